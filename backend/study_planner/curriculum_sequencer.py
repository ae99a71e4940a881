"""Keyword bucket heuristics that derive a suggested study order."""

from __future__ import annotations

import locale
import logging
import unicodedata
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from .lessons import LessonRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StudyBucket:
    key: str
    label: str
    keywords: Tuple[str, ...]


# Order matters: classification is first match wins over this sequence.
ORDER_BUCKETS: Tuple[StudyBucket, ...] = (
    StudyBucket(
        "fundamentals",
        "Fundamentals",
        ("pitch", "notation", "accidental", "enharmonic", "rhythm", "meter"),
    ),
    StudyBucket("intervals", "Intervals", ("interval", "naming intervals", "inversion", "compound")),
    StudyBucket("major-scale", "Major scale", ("major scale", "w-w-h", "construction")),
    StudyBucket(
        "keys-circle",
        "Key signatures / Circle of fifths",
        ("key signature", "circle of fifths", "circle of 5ths"),
    ),
    StudyBucket("diatonic-triads", "Diatonic triads", ("triads", "diatonic triads")),
    StudyBucket("diatonic-7ths", "Diatonic sevenths", ("seventh", "7th", "sevenths")),
    StudyBucket("cadences", "Cadences", ("cadence", "voice-leading")),
    StudyBucket(
        "modes",
        "Modes",
        ("mode", "ionian", "dorian", "phrygian", "lydian", "mixolydian", "aeolian", "locrian"),
    ),
    StudyBucket("secondary", "Secondary dominants", ("secondary dominant", "v/v", "leading-tone")),
    StudyBucket("borrowed", "Borrowed chords", ("borrowed", "modal mixture", "♭", "bVII")),
    StudyBucket("progressions", "Progressions / Form", ("progression", "ii-v-i", "i–v–vi–iv", "form")),
    StudyBucket("ear", "Ear training", ("ear training", "application", "repertoire")),
)

INTRO_MARKERS: Tuple[str, ...] = ("intro", "overview")


def _haystack(lesson: LessonRecord) -> str:
    return f"{lesson.title} {' '.join(lesson.tags)}".lower()


def bucket_index(lesson: LessonRecord, buckets: Sequence[StudyBucket] = ORDER_BUCKETS) -> int:
    """Return the position of the first bucket whose keywords appear in the lesson."""
    haystack = _haystack(lesson)
    for index, bucket in enumerate(buckets):
        if any(keyword.lower() in haystack for keyword in bucket.keywords):
            return index
    if any(marker in haystack for marker in INTRO_MARKERS):
        return 0
    # Unmatched lessons default to the middle bucket.
    fallback = len(buckets) // 2
    logger.debug("No bucket keyword matched %r; defaulting to bucket %d", lesson.title, fallback)
    return fallback


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def _title_sort_key(title: str) -> Tuple[str, str, str]:
    """Accent- and case-insensitive primary key, then locale collation, then the raw title."""
    folded = title.casefold().replace("\x00", "")
    return _strip_accents(folded), locale.strxfrm(folded), title


def suggest_order(
    lessons: Iterable[LessonRecord],
    buckets: Sequence[StudyBucket] = ORDER_BUCKETS,
) -> List[LessonRecord]:
    """Stable sort by bucket, then title. The input and its records are left untouched."""
    keyed = [(bucket_index(lesson, buckets), _title_sort_key(lesson.title), lesson) for lesson in lessons]
    keyed.sort(key=lambda entry: (entry[0], entry[1]))
    return [lesson for _, _, lesson in keyed]


def classify_lessons(
    lessons: Iterable[LessonRecord],
    buckets: Sequence[StudyBucket] = ORDER_BUCKETS,
) -> List[Tuple[LessonRecord, StudyBucket]]:
    return [(lesson, buckets[bucket_index(lesson, buckets)]) for lesson in lessons]


def describe_buckets(buckets: Sequence[StudyBucket] = ORDER_BUCKETS) -> List[Dict[str, object]]:
    return [
        {"index": index, "key": bucket.key, "label": bucket.label, "keywords": list(bucket.keywords)}
        for index, bucket in enumerate(buckets)
    ]


__all__ = [
    "INTRO_MARKERS",
    "ORDER_BUCKETS",
    "StudyBucket",
    "bucket_index",
    "classify_lessons",
    "describe_buckets",
    "suggest_order",
]
