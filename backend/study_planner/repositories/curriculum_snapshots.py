"""Database-backed key/value repository for curriculum snapshots."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import CurriculumSnapshotModel


def _normalize_key(key: str) -> str:
    normalized = key.strip()
    if not normalized:
        raise ValueError("Storage key cannot be empty.")
    return normalized


class CurriculumSnapshotRepository:
    """Reads and writes whole curriculum payloads keyed by storage key."""

    def get(self, session: Session, key: str) -> Optional[Any]:
        model = session.get(CurriculumSnapshotModel, _normalize_key(key))
        if model is None:
            return None
        return model.payload

    def put(self, session: Session, key: str, payload: Sequence[Any]) -> None:
        normalized = _normalize_key(key)
        model = session.get(CurriculumSnapshotModel, normalized)
        if model is None:
            model = CurriculumSnapshotModel(key=normalized)
            session.add(model)
        model.payload = list(payload)
        model.lesson_count = len(model.payload)
        session.flush()

    def keys(self, session: Session) -> List[str]:
        stmt = select(CurriculumSnapshotModel.key).order_by(CurriculumSnapshotModel.key)
        return list(session.execute(stmt).scalars())


curriculum_snapshots = CurriculumSnapshotRepository()

__all__ = ["CurriculumSnapshotRepository", "curriculum_snapshots"]
