"""JSON interchange file used by the export and import endpoints."""

from __future__ import annotations

import json
import logging
from typing import Iterable, List, Optional, Union

from pydantic import ValidationError

from .lessons import LessonRecord, decode_lessons, encode_lessons

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "beato-study-plan.json"


class InterchangeError(ValueError):
    """Raised when an import payload cannot be read as a curriculum."""


def export_json(lessons: Iterable[LessonRecord]) -> str:
    return json.dumps(encode_lessons(lessons), indent=2, ensure_ascii=False)


def parse_interchange(content: Union[str, bytes, None]) -> Optional[List[LessonRecord]]:
    """Decode an exported curriculum.

    Returns ``None`` when the document is valid JSON but not an array, in which
    case the import should be ignored. An empty document reads as an empty
    curriculum.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise InterchangeError("Invalid JSON") from exc
    try:
        raw = json.loads(content or "[]")
    except json.JSONDecodeError as exc:
        raise InterchangeError("Invalid JSON") from exc
    if not isinstance(raw, list):
        logger.info("Ignoring interchange document of type %s", type(raw).__name__)
        return None
    try:
        return decode_lessons(raw)
    except ValidationError as exc:
        raise InterchangeError(f"Invalid lesson entry: {exc.errors()[0]['msg']}") from exc


__all__ = ["EXPORT_FILENAME", "InterchangeError", "export_json", "parse_interchange"]
