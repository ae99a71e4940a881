"""Persistence backends the curriculum store saves through.

Every backend stores the full curriculum as a JSON array under one namespaced
key. ``load`` returns the raw decoded value (or ``None`` when nothing was
stored); validating it is the store's job.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from .config import Settings
from .db.base import Base
from .db.session import get_engine, session_scope
from .repositories.curriculum_snapshots import curriculum_snapshots

logger = logging.getLogger(__name__)

Payload = List[Dict[str, Any]]


class CurriculumPersistence(Protocol):
    """Load/save contract injected into the curriculum store."""

    key: str

    def load(self) -> Optional[Any]:  # pragma: no cover - protocol definition
        ...

    def save(self, payload: Payload) -> None:  # pragma: no cover - protocol definition
        ...


class InMemoryCurriculumPersistence:
    """Process-local backend for tests and throwaway sessions."""

    def __init__(self, key: str = "memory", initial: Optional[Any] = None) -> None:
        self.key = key
        self._value = copy.deepcopy(initial)
        self._lock = threading.Lock()
        self.save_count = 0

    def load(self) -> Optional[Any]:
        with self._lock:
            return copy.deepcopy(self._value)

    def save(self, payload: Payload) -> None:
        with self._lock:
            self._value = copy.deepcopy(payload)
            self.save_count += 1


class JsonFileCurriculumPersistence:
    """Legacy JSON file holding a mapping of storage key to curriculum array."""

    def __init__(self, path: Path, key: str) -> None:
        self._path = path
        self.key = key
        self._lock = threading.RLock()

    def _read_unlocked(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        with self._path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        if not isinstance(raw, dict):
            raise ValueError(f"Legacy curriculum file {self._path} does not contain a JSON object.")
        return raw

    def load(self) -> Optional[Any]:
        with self._lock:
            return self._read_unlocked().get(self.key)

    def save(self, payload: Payload) -> None:
        with self._lock:
            try:
                stored = self._read_unlocked()
            except (OSError, ValueError):
                logger.warning("Overwriting unreadable legacy curriculum file %s", self._path)
                stored = {}
            stored[self.key] = payload
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(stored, handle, indent=2, ensure_ascii=False)
            tmp_path.replace(self._path)


class DatabaseCurriculumPersistence:
    """SQLAlchemy key/value table backend."""

    def __init__(self, key: str) -> None:
        self.key = key
        self._schema_ready = False

    def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        Base.metadata.create_all(get_engine())
        self._schema_ready = True

    def load(self) -> Optional[Any]:
        self._ensure_schema()
        with session_scope(commit=False) as session:
            return curriculum_snapshots.get(session, self.key)

    def save(self, payload: Payload) -> None:
        self._ensure_schema()
        with session_scope() as session:
            curriculum_snapshots.put(session, self.key, payload)


def build_persistence(settings: Settings) -> CurriculumPersistence:
    mode = settings.persistence_mode
    if mode == "database":
        return DatabaseCurriculumPersistence(settings.storage_key)
    if mode == "memory":
        return InMemoryCurriculumPersistence(settings.storage_key)
    return JsonFileCurriculumPersistence(settings.legacy_store_path, settings.storage_key)


__all__ = [
    "CurriculumPersistence",
    "DatabaseCurriculumPersistence",
    "InMemoryCurriculumPersistence",
    "JsonFileCurriculumPersistence",
    "build_persistence",
]
