from __future__ import annotations

import os
from typing import Iterator

import pytest

os.environ.setdefault("STUDY_PLANNER_PERSISTENCE_MODE", "memory")
os.environ.setdefault("STUDY_PLANNER_SEED_DEMO", "0")

from study_planner.config import get_settings  # noqa: E402
from study_planner.curriculum_store import CurriculumStore  # noqa: E402
from study_planner.db.session import dispose_engine  # noqa: E402
from study_planner.persistence import InMemoryCurriculumPersistence  # noqa: E402
from study_planner.telemetry import TelemetryEvent, clear_listeners, register_listener  # noqa: E402


@pytest.fixture
def memory_persistence() -> InMemoryCurriculumPersistence:
    return InMemoryCurriculumPersistence(key="test-curriculum")


@pytest.fixture
def store(memory_persistence: InMemoryCurriculumPersistence) -> Iterator[CurriculumStore]:
    curriculum = CurriculumStore(memory_persistence)
    curriculum.load()
    yield curriculum
    curriculum.close()


@pytest.fixture
def telemetry_events() -> Iterator[list[TelemetryEvent]]:
    events: list[TelemetryEvent] = []
    register_listener(events.append)
    yield events
    clear_listeners()


@pytest.fixture
def sqlite_database(tmp_path, monkeypatch) -> Iterator[str]:
    url = f"sqlite:///{tmp_path / 'planner.db'}"
    monkeypatch.setenv("STUDY_PLANNER_DATABASE_URL", url)
    get_settings.cache_clear()
    dispose_engine()
    yield url
    dispose_engine()
    get_settings.cache_clear()
