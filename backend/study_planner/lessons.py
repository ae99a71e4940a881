"""Lesson record model shared by the parser, sequencer, store and API."""

from __future__ import annotations

import uuid
from typing import Any, Iterable, List, Literal

from pydantic import BaseModel, Field

DEFAULT_BASE_URL = "https://learn.beatobook.com/"

MoveDirection = Literal["up", "down"]


def new_lesson_id() -> str:
    return str(uuid.uuid4())


class LessonRecord(BaseModel):
    """One curriculum entry. Its position in the curriculum is its study order."""

    id: str = Field(default_factory=new_lesson_id)
    title: str = ""
    url: str = ""
    tags: List[str] = Field(default_factory=list)
    notes: str = ""
    done: bool = False


def decode_lessons(payload: Iterable[Any]) -> List[LessonRecord]:
    """Validate raw interchange entries into records, keeping ids and order.

    Raises ``pydantic.ValidationError`` when an entry is not a lesson object.
    """
    return [LessonRecord.model_validate(entry) for entry in payload]


def encode_lessons(lessons: Iterable[LessonRecord]) -> List[dict[str, Any]]:
    return [lesson.model_dump(mode="json") for lesson in lessons]


__all__ = [
    "DEFAULT_BASE_URL",
    "LessonRecord",
    "MoveDirection",
    "decode_lessons",
    "encode_lessons",
    "new_lesson_id",
]
