"""
Unit Tests for mixed-mode text wrapping.

Tests that wrapped lines stay inside their column, keep every character,
and render fenced/inline code in the monospace font.
"""

import pytest
from reportlab.pdfbase.pdfmetrics import stringWidth

from omr_toolkit.builder.layout import LayoutConfig, wrap_mixed, wrap_plain
from omr_toolkit.builder.layout.composer import statement_style
from omr_toolkit.builder.layout.text import (
    line_width,
    split_fenced_blocks,
    split_inline_code,
)


@pytest.fixture
def style():
    return statement_style(LayoutConfig())


def _text(lines):
    return " ".join(line.text for line in lines)


class TestSplitting:
    """Tests for fence and backtick splitting."""

    def test_drops_language_tag(self):
        blocks = split_fenced_blocks("Run:\n```python\nprint(1)\n```\nDone")
        assert blocks == [("Run:\n", False), ("print(1)", True), ("\nDone", False)]

    def test_unclosed_fence_is_plain_text(self):
        assert split_fenced_blocks("a ```b c") == [("a ", False), ("```b c", False)]

    def test_single_line_fence(self):
        """A one-line fence has no language tag to drop."""
        assert split_fenced_blocks("```x = 1```") == [("x = 1", True)]

    def test_tag_with_spaces_is_code(self):
        blocks = split_fenced_blocks("```not a tag\nbody\n```")
        assert blocks == [("not a tag\nbody", True)]

    def test_backticks_alternate_runs(self):
        assert split_inline_code("call `f()` now") == [
            ("call ", False), ("f()", True), (" now", False),
        ]


class TestWrapPlain:
    """Tests for wrap_plain()."""

    def test_lines_fit_width(self):
        text = "The quick brown fox jumps over the lazy dog. " * 10
        lines = wrap_plain(text, 150, "Helvetica", 10)
        assert len(lines) > 1
        for line in lines:
            assert stringWidth(line, "Helvetica", 10) <= 150

    def test_words_preserved_in_order(self):
        text = "alpha beta gamma delta epsilon zeta eta theta"
        lines = wrap_plain(text, 60, "Helvetica", 10)
        assert " ".join(lines).split() == text.split()

    def test_splits_overlong_token(self):
        token = "x" * 200
        lines = wrap_plain(token, 50, "Helvetica", 10)
        assert "".join(lines) == token
        assert all(stringWidth(line, "Helvetica", 10) <= 50 for line in lines)

    def test_empty_text(self):
        assert wrap_plain("", 100, "Helvetica", 10) == [""]


class TestWrapMixed:
    """Tests for wrap_mixed()."""

    def test_inline_code_is_monospace(self, style):
        lines = wrap_mixed("Use `len(x)` here", 400, style)
        mono = [s for line in lines for s in line.segments if s.monospace]
        assert [s.text for s in mono] == ["len(x)"]
        assert mono[0].font == style.mono_font

    def test_space_between_code_and_text(self, style):
        """No whitespace at a plain/code junction gets one space."""
        lines = wrap_mixed("call`f()`now", 400, style)
        assert lines[0].text == "call f() now"

    def test_keeps_block_indentation(self, style):
        lines = wrap_mixed("Code:\n```\ndef f():\n    return 1\n```", 400, style)
        texts = [line.text for line in lines]
        assert "    return 1" in texts
        assert lines[-1].line_height == style.code_line_height

    def test_tabs_become_two_spaces(self, style):
        lines = wrap_mixed("```\nif x:\n\tpass\n```", 400, style)
        assert lines[-1].text == "  pass"

    def test_mixed_text_fits(self, style):
        text = "Evaluate `sorted(values, key=lambda v: -v)` for the list " * 6
        width = 200
        for line in wrap_mixed(text, width, style):
            assert line_width(list(line.segments)) <= width

    def test_no_characters_lost(self, style):
        text = "one `two` three four `five six` seven"
        lines = wrap_mixed(text, 60, style)
        assert _text(lines).split() == "one two three four five six seven".split()

    def test_empty_statement(self, style):
        lines = wrap_mixed("", 200, style)
        assert len(lines) == 1
        assert lines[0].text == ""

    def test_unclosed_fence_text_kept(self, style):
        lines = wrap_mixed("before ```after", 400, style)
        assert _text(lines).split()[0] == "before"
        assert "after" in _text(lines)
