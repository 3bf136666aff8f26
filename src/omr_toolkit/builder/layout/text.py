"""
Module: builder.layout.text

Purpose:
    Mixed-mode text handling for question statements and options.
    Splits text into plain and monospace runs and greedily wraps them
    into lines that never exceed a column width.

Key Functions:
    - split_fenced_blocks(): ```fenced``` blocks vs plain text
    - split_inline_code(): `inline` spans inside plain text
    - wrap_segments(): Greedy wrap with character splitting
    - wrap_mixed(): Full statement/option wrap -> TextLines
    - wrap_plain(): Single-font wrap for header lines

Rules:
    - Fenced content keeps its line breaks and inner whitespace, tabs
      become two spaces and a single-word language tag on the opening
      line is dropped. A fence with no closing fence is plain text.
    - Plain runs have whitespace collapsed; leading whitespace is dropped
      at the start of a line.
    - A token wider than the whole line is split character by character.

Dependencies:
    - reportlab.pdfbase.pdfmetrics: Standard font metrics

Used By:
    - builder.layout.composer
    - builder.layout.header
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import List

from reportlab.pdfbase.pdfmetrics import stringWidth

from .models import TextLine, TextSegment

FENCE = "```"
TAB_REPLACEMENT = "  "

_WHITESPACE_SPLIT = re.compile(r"(\s+)")
_WHITESPACE = re.compile(r"\s+")
_LANGUAGE_TAG = re.compile(r"^[A-Za-z0-9_+#.-]+$")


@dataclass(frozen=True)
class TextStyle:
    """Fonts, sizes and line heights used by wrap_mixed()."""

    font: str
    mono_font: str
    size: float
    inline_code_size: float
    block_code_size: float
    line_height: float
    code_line_height: float


def segment_width(segment: TextSegment) -> float:
    return stringWidth(segment.text, segment.font, segment.size)


def line_width(segments: List[TextSegment]) -> float:
    return sum(segment_width(s) for s in segments)


def code_lines(text: str) -> list[str]:
    """Split fenced content into lines, normalizing newlines and tabs."""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return [line.replace("\t", TAB_REPLACEMENT) for line in normalized.split("\n")]


def split_fenced_blocks(text: str) -> list[tuple[str, bool]]:
    """
    Split text on ``` fences.

    Returns:
        List of (content, is_code) in source order

    Example:
        >>> split_fenced_blocks("Run:\\n```python\\nprint(1)\\n```")
        [('Run:\\n', False), ('print(1)', True)]
    """
    blocks: list[tuple[str, bool]] = []
    i = 0
    while i < len(text):
        start = text.find(FENCE, i)
        if start == -1:
            blocks.append((text[i:], False))
            break
        if start > i:
            blocks.append((text[i:start], False))
        end = text.find(FENCE, start + len(FENCE))
        if end == -1:
            # Unclosed fence: the rest is ordinary text
            blocks.append((text[start:], False))
            break
        blocks.append((_strip_fence_body(text[start + len(FENCE):end]), True))
        i = end + len(FENCE)
    return blocks


def _strip_fence_body(body: str) -> str:
    lines = code_lines(body)
    if len(lines) > 1:
        first = lines[0].strip()
        if not first or _LANGUAGE_TAG.match(first):
            lines = lines[1:]
        if len(lines) > 1 and not lines[-1].strip():
            lines = lines[:-1]
    return "\n".join(lines)


def split_inline_code(text: str) -> list[tuple[str, bool]]:
    """
    Split plain text on single backticks.

    Runs alternate plain/code starting with plain; an unmatched trailing
    backtick makes the remainder code.

    Example:
        >>> split_inline_code("call `f()` now")
        [('call ', False), ('f()', True), (' now', False)]
    """
    parts = text.split("`")
    return [(part, index % 2 == 1) for index, part in enumerate(parts)]


def wrap_segments(
    segments: List[TextSegment],
    max_width: float,
    *,
    keep_leading_space: bool = False,
) -> list[list[TextSegment]]:
    """
    Greedily wrap segments into lines no wider than ``max_width``.

    Plain segments break on whitespace; monospace segments are single
    tokens. Tokens wider than a full line are split per character.

    Returns:
        At least one (possibly empty) line
    """
    lines: list[list[TextSegment]] = []
    current: list[TextSegment] = []
    width = 0.0

    for segment in segments:
        if not segment.text:
            continue
        if segment.monospace:
            tokens = [segment.text]
        else:
            tokens = [t for t in _WHITESPACE_SPLIT.split(segment.text) if t]

        for token in tokens:
            blank = token.isspace()
            if blank and not current and not keep_leading_space:
                continue

            piece = replace(segment, text=token)
            token_width = segment_width(piece)
            if width + token_width <= max_width:
                current.append(piece)
                width += token_width
                continue

            if current:
                lines.append(current)
                current = []
                width = 0.0
                if blank and not keep_leading_space:
                    continue

            if token_width > max_width:
                chunk = ""
                for ch in token:
                    candidate = chunk + ch
                    if stringWidth(candidate, segment.font, segment.size) <= max_width:
                        chunk = candidate
                        continue
                    if chunk:
                        current.append(replace(segment, text=chunk))
                        lines.append(current)
                        current = []
                    chunk = ch
                if chunk:
                    current.append(replace(segment, text=chunk))
                    width = stringWidth(chunk, segment.font, segment.size)
                continue

            current.append(piece)
            width = token_width

    if current:
        lines.append(current)
    return lines or [[]]


def _with_junction_spaces(segments: List[TextSegment], style: TextStyle) -> list[TextSegment]:
    result: list[TextSegment] = []
    for segment in segments:
        if result:
            previous = result[-1]
            joined = previous.text[-1:].isspace() or segment.text[:1].isspace()
            if previous.monospace != segment.monospace and not joined:
                result.append(TextSegment(" ", style.font, style.size))
        result.append(segment)
    return result


def wrap_mixed(text: str, max_width: float, style: TextStyle) -> list[TextLine]:
    """
    Wrap text with fenced and inline monospace spans.

    Args:
        text: Statement or option text
        max_width: Column width in points
        style: Fonts, sizes and line heights

    Returns:
        Lines in order; never empty
    """
    lines: list[TextLine] = []
    empty_plain = TextLine((TextSegment("", style.font, style.size),), style.line_height)

    for content, is_code in split_fenced_blocks(text or ""):
        if is_code:
            for raw in code_lines(content):
                segment = TextSegment(raw, style.mono_font, style.block_code_size, True)
                for line in wrap_segments([segment], max_width, keep_leading_space=True):
                    segs = tuple(line) if line else (replace(segment, text=""),)
                    lines.append(TextLine(segs, style.code_line_height))
            continue

        segments: list[TextSegment] = []
        for run, is_inline_code in split_inline_code(content):
            if is_inline_code:
                collapsed = _WHITESPACE.sub(" ", run).strip()
                if collapsed:
                    segments.append(
                        TextSegment(collapsed, style.mono_font, style.inline_code_size, True)
                    )
            else:
                collapsed = _WHITESPACE.sub(" ", run)
                if collapsed:
                    segments.append(TextSegment(collapsed, style.font, style.size))

        if not any(s.text.strip() for s in segments):
            continue

        for line in wrap_segments(_with_junction_spaces(segments, style), max_width):
            lines.append(TextLine(tuple(line), style.line_height) if line else empty_plain)

    return lines or [empty_plain]


def wrap_plain(text: str, max_width: float, font: str, size: float) -> list[str]:
    """
    Wrap single-font text into strings (header and instructions lines).

    Whitespace is collapsed; words wider than a line are split per character.
    """
    segments = [TextSegment(_WHITESPACE.sub(" ", text or "").strip(), font, size)]
    return ["".join(s.text for s in line).rstrip() for line in wrap_segments(segments, max_width)]
