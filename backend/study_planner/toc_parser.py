"""Tolerant parser for pasted table-of-contents text.

Each non-blank line becomes one lesson::

    Title | https://link | tag1, tag2

Both trailing columns are optional. When the second column is not an explicit
http(s) link it is folded into the tags, so ``Title | tag1, tag2`` works too.
"""

from __future__ import annotations

import re
from typing import List

from .lessons import DEFAULT_BASE_URL, LessonRecord

_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
_TAG_SEPARATORS = re.compile(r"[,;]")

DEMO_TOC = """Introduction | {base} |
How to Use This Book | {base} |
Chapter Video | {base} |
Theory and Harmony | {base} | theory, harmony
Naming Intervals | {base} | intervals
Enharmonic Intervals | {base} | intervals
The Circle of 5ths | {base} | key signature, circle of fifths
Chords and Their Formulas | {base} | chords
Major Scale (Triads and Sevenths) | {base} | triads,sevenths
Major Scale Modal Sounds | {base} | modes"""


def _split_tags(raw: str) -> List[str]:
    return [piece.strip() for piece in _TAG_SEPARATORS.split(raw) if piece.strip()]


def _parse_line(line: str, position: int, base_url: str) -> LessonRecord:
    fields = [piece.strip() for piece in line.split("|")]
    title = fields[0]
    link = fields[1] if len(fields) > 1 else ""
    tag_field = fields[2] if len(fields) > 2 else ""

    if link and not _URL_PATTERN.match(link):
        tag_field = ",".join(part for part in (link, tag_field) if part)
        link = ""

    return LessonRecord(
        title=title or f"Lesson {position}",
        url=link or base_url,
        tags=_split_tags(tag_field),
    )


def parse_toc(text: str, *, base_url: str = DEFAULT_BASE_URL) -> List[LessonRecord]:
    """Turn pasted text into fresh lesson records; never raises on odd input."""
    lines = [line.strip() for line in (text or "").split("\n")]
    return [
        _parse_line(line, position, base_url)
        for position, line in enumerate((line for line in lines if line), start=1)
    ]


def demo_lessons(*, base_url: str = DEFAULT_BASE_URL) -> List[LessonRecord]:
    return parse_toc(DEMO_TOC.format(base=base_url), base_url=base_url)


__all__ = ["DEMO_TOC", "demo_lessons", "parse_toc"]
