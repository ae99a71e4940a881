"""ORM models backing the database persistence mode."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


class CurriculumSnapshotModel(TimestampMixin, Base):
    """Whole-curriculum snapshot stored under a namespaced key."""

    __tablename__ = "curriculum_snapshots"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    payload: Mapped[list[Any]] = mapped_column(JSONType, default=list, nullable=False)
    lesson_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


__all__ = ["CurriculumSnapshotModel"]
