"""
Unit Tests for QR identifiers.

The ``EXAM:<folio>:P<page>`` payload is shared with external systems, so
its exact format is pinned here.
"""

import pytest

from omr_toolkit.common.identifiers import (
    build_identifier,
    identifier_matches,
    normalize_folio,
    parse_identifier,
)


class TestBuildIdentifier:
    """Tests for build_identifier()."""

    def test_builds_wire_format(self):
        """Folio is upper-cased and the page is prefixed with P."""
        assert build_identifier("ab12", 3) == "EXAM:AB12:P3"

    def test_trims_folio(self):
        assert build_identifier("  x9 ", 1) == "EXAM:X9:P1"

    @pytest.mark.parametrize("folio", ["", "   ", None])
    def test_rejects_empty_folio(self, folio):
        with pytest.raises(ValueError):
            build_identifier(folio, 1)

    def test_rejects_colon_in_folio(self):
        with pytest.raises(ValueError):
            build_identifier("A:B", 1)

    def test_rejects_page_zero(self):
        with pytest.raises(ValueError):
            build_identifier("A1", 0)


class TestParseIdentifier:
    """Tests for parse_identifier()."""

    def test_returns_folio_and_page(self):
        assert parse_identifier("EXAM:AB12:P3") == ("AB12", 3)

    def test_lower_case_is_normalised(self):
        assert parse_identifier("exam:ab12:p10") == ("AB12", 10)

    def test_finds_payload_among_extra_fields(self):
        """Payloads followed by ``|`` fields are still parsed."""
        assert parse_identifier("EXAM:F1:P2|student=7") == ("F1", 2)

    @pytest.mark.parametrize("text", [None, "", "hello", "EXAM::P1", "EXAM:AB:PX"])
    def test_not_an_identifier(self, text):
        assert parse_identifier(text) is None

    def test_parse_inverts_build(self):
        assert parse_identifier(build_identifier("zz7", 4)) == ("ZZ7", 4)


class TestIdentifierMatches:
    """Tests for identifier_matches()."""

    def test_matches_ignoring_case_and_space(self):
        assert identifier_matches("  exam:ab:p1 ", ["EXAM:AB:P1"])

    def test_matches_prefix_followed_by_pipe(self):
        assert identifier_matches("EXAM:AB:P1|extra", ["EXAM:AB:P1"])

    def test_other_page_does_not_match(self):
        assert not identifier_matches("EXAM:AB:P2", ["EXAM:AB:P1"])

    def test_bare_prefix_does_not_match(self):
        """P1 must not match P10."""
        assert not identifier_matches("EXAM:AB:P10", ["EXAM:AB:P1"])

    def test_matches_any_expected(self):
        assert identifier_matches("EXAM:AB:P2", ["EXAM:AB:P1", "EXAM:AB:P2"])

    def test_empty_expected_never_matches(self):
        assert not identifier_matches("EXAM:AB:P1", [])


def test_normalize_folio_when_mixed_case_then_upper():
    assert normalize_folio(" aBc ") == "ABC"
