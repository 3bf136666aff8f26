"""
Module: common.identifiers

Purpose:
    Build and parse the per-page QR payload ``EXAM:<folio>:P<page>``.

    The payload is a wire contract between generation and recovery:
    sheets printed today carry it permanently, so the format must not
    change without a compatibility plan.

Key Functions:
    - normalize_folio(): Canonical folio form (trimmed, upper case)
    - build_identifier(): Payload for one page
    - parse_identifier(): Extract (folio, page) from decoded QR text
    - identifier_matches(): Compare decoded text against expected payloads

Used By:
    - builder.controller: One identifier per generated page
    - scanner.pipeline: QR confirmation of the scanned page
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Tuple

IDENTIFIER_PREFIX = "EXAM"

IDENTIFIER_RE = re.compile(r"EXAM:([^:\s|]+):P(\d+)", re.IGNORECASE)


def normalize_folio(folio: str) -> str:
    """Return the canonical folio form used inside QR payloads."""
    return str(folio or "").strip().upper()


def build_identifier(folio: str, page_number: int) -> str:
    """
    Build the QR payload for one page.

    Args:
        folio: Exam folio (normalized to upper case)
        page_number: 1-based page number

    Raises:
        ValueError: If folio is empty or page_number < 1

    Example:
        >>> build_identifier("ab12", 3)
        'EXAM:AB12:P3'
    """
    canonical = normalize_folio(folio)
    if not canonical:
        raise ValueError("folio must not be empty")
    if ":" in canonical:
        raise ValueError(f"folio must not contain ':' : {folio!r}")
    if page_number < 1:
        raise ValueError(f"page_number must be >= 1: {page_number}")
    return f"{IDENTIFIER_PREFIX}:{canonical}:P{page_number}"


def parse_identifier(text: Optional[str]) -> Optional[Tuple[str, int]]:
    """
    Extract ``(folio, page_number)`` from decoded QR text.

    Returns None when the text does not carry an exam identifier.

    Example:
        >>> parse_identifier("exam:ab12:p3")
        ('AB12', 3)
    """
    if not text:
        return None
    match = IDENTIFIER_RE.search(text)
    if not match:
        return None
    return match.group(1).upper(), int(match.group(2))


def identifier_matches(decoded: str, expected: Iterable[str]) -> bool:
    """
    Check decoded QR text against one or more expected payloads.

    Comparison is case-insensitive and ignores surrounding whitespace.
    A payload followed by ``|`` and extra fields is accepted as a match.
    """
    normalized = decoded.strip().upper()
    for candidate in expected:
        exp = str(candidate).strip().upper()
        if not exp:
            continue
        if normalized == exp or normalized.startswith(f"{exp}|"):
            return True
    return False
