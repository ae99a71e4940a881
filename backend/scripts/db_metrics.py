"""Print a one-off JSON snapshot of database pool metrics."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from study_planner.db.models import CurriculumSnapshotModel
from study_planner.db.monitoring import get_pool_snapshot
from study_planner.db.session import get_engine, session_scope
from study_planner.repositories.curriculum_snapshots import curriculum_snapshots

LOGGER = logging.getLogger("study_planner.db_metrics")


def _stored_curricula(engine: Engine) -> list[str]:
    if not inspect(engine).has_table(CurriculumSnapshotModel.__tablename__):
        return []
    with session_scope(commit=False) as session:
        return curriculum_snapshots.keys(session)


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        engine = get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "pool": get_pool_snapshot(engine),
            "curricula": _stored_curricula(engine),
        }
        print(json.dumps(payload))
        return 0
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Failed to collect database metrics: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
