"""Canonical ordered curriculum with write-through, fire-and-forget persistence."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, List, Optional

from pydantic import ValidationError

from .config import get_settings
from .curriculum_sequencer import suggest_order
from .lessons import DEFAULT_BASE_URL, LessonRecord, MoveDirection, decode_lessons, encode_lessons
from .persistence import CurriculumPersistence, Payload, build_persistence
from .telemetry import emit_event
from .toc_parser import demo_lessons, parse_toc

logger = logging.getLogger(__name__)


def _clone_all(lessons: Iterable[LessonRecord]) -> List[LessonRecord]:
    return [lesson.model_copy(deep=True) for lesson in lessons]


class CurriculumStore:
    """Single writer of the lesson sequence.

    Position in the sequence is the study order. Every state change captures a
    snapshot and hands it to a one-thread writer, so saves are issued in
    dispatch order and the caller never waits for durability. Unknown ids and
    out-of-range moves are silent no-ops and do not trigger a save. Readers
    always receive copies.
    """

    def __init__(
        self,
        persistence: CurriculumPersistence,
        *,
        base_url: str = DEFAULT_BASE_URL,
        seed_demo: bool = False,
    ) -> None:
        self._persistence = persistence
        self._base_url = base_url
        self._seed_demo = seed_demo
        self._lessons: List[LessonRecord] = []
        self._lock = threading.RLock()
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="curriculum-writer")
        self._last_write: Optional[Future[None]] = None
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> List[LessonRecord]:
        """Replace in-memory state with the persisted curriculum."""
        with self._lock:
            lessons = self._read_persisted()
            seeded = False
            if lessons is None:
                # Unreadable backend: start empty and leave the stored copy alone.
                lessons = []
            elif not lessons and self._seed_demo:
                lessons = demo_lessons(base_url=self._base_url)
                seeded = True
            self._lessons = lessons
            if seeded:
                self._schedule_save()
            snapshot = _clone_all(self._lessons)
        emit_event("curriculum_loaded", count=len(snapshot), seeded=seeded, storage_key=self._persistence.key)
        return snapshot

    def flush(self, timeout: Optional[float] = None) -> None:
        """Block until every save issued so far has been attempted."""
        future = self._last_write
        if future is not None:
            future.result(timeout=timeout)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._writer.shutdown(wait=True)

    def _read_persisted(self) -> Optional[List[LessonRecord]]:
        """Decode the stored curriculum, or None when the backend could not be read."""
        try:
            raw = self._persistence.load()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to read persisted curriculum %s; starting empty without seeding: %s",
                self._persistence.key,
                exc,
            )
            emit_event("curriculum_load_failed", storage_key=self._persistence.key, error=str(exc))
            return None
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Persisted curriculum %s is not a list; starting empty", self._persistence.key)
            return []
        try:
            return decode_lessons(raw)
        except ValidationError as exc:
            logger.warning("Persisted curriculum %s is malformed; starting empty: %s", self._persistence.key, exc)
            return []

    def _schedule_save(self) -> None:
        if self._closed:
            logger.warning("Curriculum store is closed; dropping save of %d lessons", len(self._lessons))
            return
        payload = encode_lessons(self._lessons)
        self._last_write = self._writer.submit(self._write, payload)

    def _write(self, payload: Payload) -> None:
        try:
            self._persistence.save(payload)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Failed to persist curriculum %s", self._persistence.key)
            emit_event(
                "curriculum_persist_failed",
                storage_key=self._persistence.key,
                lesson_count=len(payload),
                error=str(exc),
            )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def lessons(self) -> List[LessonRecord]:
        with self._lock:
            return _clone_all(self._lessons)

    def __len__(self) -> int:
        return len(self._lessons)

    def get(self, lesson_id: str) -> Optional[LessonRecord]:
        with self._lock:
            index = self._index_of(lesson_id)
            return self._lessons[index].model_copy(deep=True) if index >= 0 else None

    def export_snapshot(self) -> List[LessonRecord]:
        return self.lessons

    def filter(self, query: Optional[str]) -> List[LessonRecord]:
        """Lessons whose title or any tag contains the query, case-insensitively."""
        needle = (query or "").lower()
        with self._lock:
            if not needle:
                return _clone_all(self._lessons)
            return _clone_all(
                lesson
                for lesson in self._lessons
                if needle in lesson.title.lower() or any(needle in tag.lower() for tag in lesson.tags)
            )

    def _index_of(self, lesson_id: str) -> int:
        for index, lesson in enumerate(self._lessons):
            if lesson.id == lesson_id:
                return index
        return -1

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, new_records: Iterable[LessonRecord]) -> int:
        batch = _clone_all(new_records)
        if not batch:
            return 0
        with self._lock:
            self._lessons = [*self._lessons, *batch]
            self._schedule_save()
        emit_event("lessons_added", count=len(batch), storage_key=self._persistence.key)
        return len(batch)

    def add_from_text(self, text: str) -> int:
        return self.add(parse_toc(text, base_url=self._base_url))

    def apply_suggested_order(self) -> List[LessonRecord]:
        with self._lock:
            self._lessons = suggest_order(self._lessons)
            self._schedule_save()
            snapshot = _clone_all(self._lessons)
        emit_event("suggested_order_applied", count=len(snapshot), storage_key=self._persistence.key)
        return snapshot

    def move(self, lesson_id: str, direction: MoveDirection) -> bool:
        with self._lock:
            index = self._index_of(lesson_id)
            if index < 0:
                return False
            target = index - 1 if direction == "up" else index + 1
            if target < 0 or target >= len(self._lessons):
                return False
            reordered = list(self._lessons)
            reordered[index], reordered[target] = reordered[target], reordered[index]
            self._lessons = reordered
            self._schedule_save()
            return True

    def toggle_done(self, lesson_id: str) -> bool:
        with self._lock:
            index = self._index_of(lesson_id)
            if index < 0:
                return False
            return self._replace_at(index, done=not self._lessons[index].done)

    def set_notes(self, lesson_id: str, notes: str) -> bool:
        with self._lock:
            index = self._index_of(lesson_id)
            if index < 0:
                return False
            return self._replace_at(index, notes=notes)

    def remove(self, lesson_id: str) -> bool:
        with self._lock:
            index = self._index_of(lesson_id)
            if index < 0:
                return False
            self._lessons = self._lessons[:index] + self._lessons[index + 1 :]
            self._schedule_save()
            return True

    def replace_all(self, records: Iterable[LessonRecord]) -> List[LessonRecord]:
        """Adopt an imported curriculum verbatim, ids included."""
        incoming = _clone_all(records)
        with self._lock:
            self._lessons = incoming
            self._schedule_save()
            snapshot = _clone_all(self._lessons)
        emit_event("curriculum_imported", count=len(snapshot), storage_key=self._persistence.key)
        return snapshot

    def _replace_at(self, index: int, **updates: object) -> bool:
        updated = list(self._lessons)
        updated[index] = updated[index].model_copy(update=updates)
        self._lessons = updated
        self._schedule_save()
        return True


_store: Optional[CurriculumStore] = None
_store_lock = threading.Lock()


def get_curriculum_store() -> CurriculumStore:
    """Process-wide store built from settings and loaded on first use."""
    global _store
    with _store_lock:
        if _store is None:
            settings = get_settings()
            store = CurriculumStore(
                build_persistence(settings),
                base_url=settings.base_url,
                seed_demo=settings.seed_demo,
            )
            store.load()
            _store = store
        return _store


def shutdown_curriculum_store() -> None:
    global _store
    with _store_lock:
        store, _store = _store, None
    if store is not None:
        store.flush()
        store.close()


__all__ = [
    "CurriculumStore",
    "get_curriculum_store",
    "shutdown_curriculum_store",
]
