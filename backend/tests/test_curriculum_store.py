"""Tests for the curriculum store's mutations, reads and persistence behaviour."""

from __future__ import annotations

from collections import Counter
from typing import Any, List, Optional

import pytest

from study_planner.curriculum_store import CurriculumStore
from study_planner.interchange import export_json
from study_planner.lessons import LessonRecord
from study_planner.persistence import InMemoryCurriculumPersistence
from study_planner.toc_parser import demo_lessons, parse_toc


class _FailingPersistence:
    key = "broken"

    def __init__(self, initial: Optional[Any] = None) -> None:
        self._initial = initial
        self.attempts = 0

    def load(self) -> Optional[Any]:
        return self._initial

    def save(self, payload: List[dict]) -> None:
        self.attempts += 1
        raise OSError("disk full")


def _titles(lessons: List[LessonRecord]) -> List[str]:
    return [lesson.title for lesson in lessons]


def _seeded(store: CurriculumStore, text: str = "A\nB\nC") -> List[LessonRecord]:
    store.add(parse_toc(text))
    store.flush()
    return store.lessons


def test_add_appends_batch_in_order(store: CurriculumStore, memory_persistence: InMemoryCurriculumPersistence) -> None:
    store.add(parse_toc("A\nB"))
    store.add(parse_toc("C\nD"))
    store.flush()
    assert _titles(store.lessons) == ["A", "B", "C", "D"]
    assert memory_persistence.save_count == 2
    assert [entry["title"] for entry in memory_persistence.load()] == ["A", "B", "C", "D"]


def test_add_empty_batch_is_a_noop(store: CurriculumStore, memory_persistence: InMemoryCurriculumPersistence) -> None:
    assert store.add([]) == 0
    assert store.add_from_text("\n  \n") == 0
    store.flush()
    assert memory_persistence.save_count == 0
    assert len(store) == 0


def test_add_from_text_parses_with_store_base_url(memory_persistence: InMemoryCurriculumPersistence) -> None:
    store = CurriculumStore(memory_persistence, base_url="https://example.org/")
    try:
        assert store.add_from_text("Intervals | intervals") == 1
        assert store.lessons[0].url == "https://example.org/"
    finally:
        store.close()


def test_move_swaps_with_neighbour(store: CurriculumStore) -> None:
    a, b, c = _seeded(store)
    assert store.move(b.id, "up") is True
    assert _titles(store.lessons) == ["B", "A", "C"]
    assert store.move(b.id, "down") is True
    assert store.move(b.id, "down") is True
    assert _titles(store.lessons) == ["A", "C", "B"]


def test_move_at_boundaries_leaves_collection_unchanged(
    store: CurriculumStore, memory_persistence: InMemoryCurriculumPersistence
) -> None:
    a, _, c = _seeded(store)
    before = export_json(store.export_snapshot())
    saves = memory_persistence.save_count
    assert store.move(a.id, "up") is False
    assert store.move(c.id, "down") is False
    assert store.move("missing", "up") is False
    store.flush()
    assert export_json(store.export_snapshot()) == before
    assert memory_persistence.save_count == saves


def test_toggle_done_and_set_notes(store: CurriculumStore) -> None:
    _, b, _ = _seeded(store)
    assert store.toggle_done(b.id) is True
    assert store.get(b.id).done is True
    assert store.toggle_done(b.id) is True
    assert store.get(b.id).done is False
    assert store.set_notes(b.id, "practice W-W-H") is True
    assert store.get(b.id).notes == "practice W-W-H"
    assert store.get(b.id).id == b.id


def test_unknown_ids_leave_collection_byte_for_byte_unchanged(
    store: CurriculumStore, memory_persistence: InMemoryCurriculumPersistence
) -> None:
    _seeded(store)
    before = export_json(store.export_snapshot())
    saves = memory_persistence.save_count
    assert store.remove("unknown") is False
    assert store.toggle_done("unknown") is False
    assert store.set_notes("unknown", "text") is False
    store.flush()
    assert export_json(store.export_snapshot()) == before
    assert memory_persistence.save_count == saves


def test_remove_deletes_one_record(store: CurriculumStore) -> None:
    _, b, _ = _seeded(store)
    assert store.remove(b.id) is True
    assert _titles(store.lessons) == ["A", "C"]
    assert store.get(b.id) is None
    assert store.remove(b.id) is False


def test_apply_suggested_order_is_idempotent_permutation(store: CurriculumStore) -> None:
    store.add(demo_lessons())
    original_ids = Counter(lesson.id for lesson in store.lessons)
    once = [lesson.id for lesson in store.apply_suggested_order()]
    twice = [lesson.id for lesson in store.apply_suggested_order()]
    assert once == twice
    assert Counter(once) == original_ids
    assert store.lessons[0].title == "Enharmonic Intervals"
    assert store.lessons[-1].title == "Chords and Their Formulas"


def test_replace_all_of_export_is_identity(store: CurriculumStore) -> None:
    _seeded(store)
    store.set_notes(store.lessons[0].id, "notes")
    store.toggle_done(store.lessons[2].id)
    before = export_json(store.export_snapshot())
    store.replace_all(store.export_snapshot())
    assert export_json(store.export_snapshot()) == before


def test_replace_all_keeps_ids_verbatim(store: CurriculumStore) -> None:
    _seeded(store)
    incoming = [LessonRecord(id="dup", title="One"), LessonRecord(id="dup", title="Two")]
    store.replace_all(incoming)
    assert [lesson.id for lesson in store.lessons] == ["dup", "dup"]


def test_filter_matches_title_or_tag(store: CurriculumStore) -> None:
    store.add(parse_toc("Naming Intervals | intervals\nDorian | modes\nCircle | Key Signature"))
    assert _titles(store.filter("INTERVAL")) == ["Naming Intervals"]
    assert _titles(store.filter("signature")) == ["Circle"]
    assert _titles(store.filter("")) == ["Naming Intervals", "Dorian", "Circle"]
    assert _titles(store.filter(None)) == ["Naming Intervals", "Dorian", "Circle"]
    assert _titles(store.filter(" ")) == ["Naming Intervals", "Circle"]
    assert store.filter("bebop") == []
    assert len(store) == 3


def test_reads_return_copies(store: CurriculumStore) -> None:
    [lesson] = _seeded(store, "Only")
    lesson.notes = "edited outside"
    store.lessons[0].tags.append("leak")
    assert store.get(lesson.id).notes == ""
    assert store.get(lesson.id).tags == []


def test_added_records_are_copied(store: CurriculumStore) -> None:
    batch = parse_toc("Only")
    store.add(batch)
    batch[0].title = "changed"
    assert store.lessons[0].title == "Only"


def test_load_restores_persisted_state() -> None:
    payload = [LessonRecord(id="a", title="Saved", url="https://x", tags=["t"], notes="n", done=True).model_dump()]
    store = CurriculumStore(InMemoryCurriculumPersistence(initial=payload), seed_demo=True)
    try:
        [lesson] = store.load()
        assert lesson.model_dump() == payload[0]
    finally:
        store.close()


@pytest.mark.parametrize("stored", [{"lessons": []}, "text", [1, 2], [{"title": ["not", "a", "string"]}]])
def test_malformed_persisted_state_loads_empty(stored: Any) -> None:
    store = CurriculumStore(InMemoryCurriculumPersistence(initial=stored))
    try:
        assert store.load() == []
    finally:
        store.close()


def test_unreadable_persistence_loads_empty() -> None:
    class _Unreadable(_FailingPersistence):
        def load(self) -> Optional[Any]:
            raise OSError("permission denied")

    store = CurriculumStore(_Unreadable())
    try:
        assert store.load() == []
    finally:
        store.close()


def test_unreadable_persistence_is_not_overwritten_by_demo_seed(telemetry_events) -> None:
    class _Unavailable(_FailingPersistence):
        key = "down"

        def load(self) -> Optional[Any]:
            raise ConnectionError("database unreachable")

    backend = _Unavailable()
    store = CurriculumStore(backend, seed_demo=True)
    try:
        assert store.load() == []
        store.flush()
        assert backend.attempts == 0
        names = [event.name for event in telemetry_events]
        assert names == ["curriculum_load_failed", "curriculum_loaded"]
        assert telemetry_events[-1].payload["seeded"] is False
    finally:
        store.close()


def test_demo_seed_only_when_empty(memory_persistence: InMemoryCurriculumPersistence, telemetry_events) -> None:
    store = CurriculumStore(memory_persistence, seed_demo=True)
    try:
        seeded = store.load()
        store.flush()
        assert len(seeded) == 10
        assert len(memory_persistence.load()) == 10
        assert telemetry_events[-1].name == "curriculum_loaded"
        assert telemetry_events[-1].payload["seeded"] is True
    finally:
        store.close()

    reloaded = CurriculumStore(memory_persistence, seed_demo=True)
    try:
        assert [lesson.id for lesson in reloaded.load()] == [lesson.id for lesson in seeded]
    finally:
        reloaded.close()


def test_persistence_failure_keeps_memory_state(telemetry_events) -> None:
    persistence = _FailingPersistence()
    store = CurriculumStore(persistence)
    try:
        store.load()
        store.add(parse_toc("A\nB"))
        store.flush()
        assert _titles(store.lessons) == ["A", "B"]
        assert persistence.attempts == 1
        failures = [event for event in telemetry_events if event.name == "curriculum_persist_failed"]
        assert failures and failures[0].payload["error"] == "disk full"
        assert failures[0].payload["lesson_count"] == 2
    finally:
        store.close()


def test_last_write_wins(store: CurriculumStore, memory_persistence: InMemoryCurriculumPersistence) -> None:
    [lesson] = _seeded(store, "Only")
    for index in range(20):
        store.set_notes(lesson.id, f"draft {index}")
    store.flush()
    assert memory_persistence.load()[0]["notes"] == "draft 19"


def test_closed_store_drops_saves(memory_persistence: InMemoryCurriculumPersistence) -> None:
    store = CurriculumStore(memory_persistence)
    store.close()
    store.add(parse_toc("Late"))
    assert _titles(store.lessons) == ["Late"]
    assert memory_persistence.save_count == 0
