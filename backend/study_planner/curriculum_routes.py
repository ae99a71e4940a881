"""Curriculum REST endpoints; every mutation goes through the curriculum store."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from pydantic import BaseModel, Field

from .config import Settings, get_settings
from .curriculum_sequencer import classify_lessons, describe_buckets
from .curriculum_store import CurriculumStore, get_curriculum_store
from .interchange import EXPORT_FILENAME, InterchangeError, export_json, parse_interchange
from .lessons import LessonRecord, MoveDirection
from .prompt_utils import automation_reference, build_study_prompt

router = APIRouter(prefix="/api/curriculum", tags=["curriculum"])
logger = logging.getLogger(__name__)


class PasteRequest(BaseModel):
    text: str = ""


class MoveRequest(BaseModel):
    direction: MoveDirection


class NotesRequest(BaseModel):
    notes: str = Field(default="")


class CurriculumResponse(BaseModel):
    count: int
    lessons: List[LessonRecord]


class PasteResponse(CurriculumResponse):
    added: int


class ImportResponse(CurriculumResponse):
    imported: bool


class PromptResponse(BaseModel):
    lesson_id: str
    prompt: str


class AutomationLinkResponse(BaseModel):
    lesson_id: str
    reference: str


def _collection(store: CurriculumStore) -> CurriculumResponse:
    lessons = store.lessons
    return CurriculumResponse(count=len(lessons), lessons=lessons)


def _require_lesson(store: CurriculumStore, lesson_id: str) -> LessonRecord:
    lesson = store.get(lesson_id)
    if lesson is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Lesson '{lesson_id}' not found.")
    return lesson


@router.get("/lessons", response_model=CurriculumResponse)
def list_lessons(
    q: Optional[str] = Query(default=None, max_length=200),
    store: CurriculumStore = Depends(get_curriculum_store),
) -> CurriculumResponse:
    lessons = store.filter(q)
    return CurriculumResponse(count=len(lessons), lessons=lessons)


@router.post("/lessons/paste", response_model=PasteResponse)
def paste_lessons(
    request: PasteRequest,
    store: CurriculumStore = Depends(get_curriculum_store),
) -> PasteResponse:
    added = store.add_from_text(request.text)
    logger.debug("Pasted table of contents produced %d lessons", added)
    lessons = store.lessons
    return PasteResponse(added=added, count=len(lessons), lessons=lessons)


@router.post("/suggested-order", response_model=CurriculumResponse)
def apply_suggested_order(store: CurriculumStore = Depends(get_curriculum_store)) -> CurriculumResponse:
    lessons = store.apply_suggested_order()
    return CurriculumResponse(count=len(lessons), lessons=lessons)


@router.post("/lessons/{lesson_id}/move", response_model=CurriculumResponse)
def move_lesson(
    lesson_id: str,
    request: MoveRequest,
    store: CurriculumStore = Depends(get_curriculum_store),
) -> CurriculumResponse:
    store.move(lesson_id, request.direction)
    return _collection(store)


@router.post("/lessons/{lesson_id}/toggle-done", response_model=CurriculumResponse)
def toggle_lesson_done(lesson_id: str, store: CurriculumStore = Depends(get_curriculum_store)) -> CurriculumResponse:
    store.toggle_done(lesson_id)
    return _collection(store)


@router.put("/lessons/{lesson_id}/notes", response_model=CurriculumResponse)
def update_lesson_notes(
    lesson_id: str,
    request: NotesRequest,
    store: CurriculumStore = Depends(get_curriculum_store),
) -> CurriculumResponse:
    store.set_notes(lesson_id, request.notes)
    return _collection(store)


@router.delete("/lessons/{lesson_id}", response_model=CurriculumResponse)
def delete_lesson(lesson_id: str, store: CurriculumStore = Depends(get_curriculum_store)) -> CurriculumResponse:
    store.remove(lesson_id)
    return _collection(store)


@router.get("/export")
def export_curriculum(store: CurriculumStore = Depends(get_curriculum_store)) -> Response:
    return Response(
        content=export_json(store.export_snapshot()),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@router.put("/import", response_model=ImportResponse)
async def import_curriculum(
    request: Request,
    store: CurriculumStore = Depends(get_curriculum_store),
) -> ImportResponse:
    body = await request.body()
    try:
        records = parse_interchange(body)
    except InterchangeError as exc:
        logger.info("Rejected curriculum import: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if records is None:
        lessons = store.lessons
        return ImportResponse(imported=False, count=len(lessons), lessons=lessons)
    lessons = store.replace_all(records)
    return ImportResponse(imported=True, count=len(lessons), lessons=lessons)


@router.get("/buckets")
def list_buckets(store: CurriculumStore = Depends(get_curriculum_store)) -> Dict[str, Any]:
    """Bucket catalogue with the ids of the current lessons that land in each bucket."""
    members: Dict[str, List[str]] = {}
    for lesson, bucket in classify_lessons(store.lessons):
        members.setdefault(bucket.key, []).append(lesson.id)
    buckets = describe_buckets()
    for entry in buckets:
        entry["lesson_ids"] = members.get(str(entry["key"]), [])
    return {"buckets": buckets}


@router.get("/lessons/{lesson_id}/prompt", response_model=PromptResponse)
def lesson_prompt(lesson_id: str, store: CurriculumStore = Depends(get_curriculum_store)) -> PromptResponse:
    lesson = _require_lesson(store, lesson_id)
    return PromptResponse(lesson_id=lesson.id, prompt=build_study_prompt(lesson))


@router.get("/lessons/{lesson_id}/automation-link", response_model=AutomationLinkResponse)
def lesson_automation_link(
    lesson_id: str,
    store: CurriculumStore = Depends(get_curriculum_store),
    settings: Settings = Depends(get_settings),
) -> AutomationLinkResponse:
    lesson = _require_lesson(store, lesson_id)
    return AutomationLinkResponse(
        lesson_id=lesson.id,
        reference=automation_reference(lesson, base_url=settings.base_url),
    )


__all__ = ["router"]
