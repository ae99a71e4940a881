"""Copy curricula from the legacy JSON file into the database key/value table."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from study_planner.config import get_settings
from study_planner.db.base import Base
from study_planner.db.session import get_engine, session_scope
from study_planner.lessons import decode_lessons, encode_lessons
from study_planner.repositories.curriculum_snapshots import curriculum_snapshots

logger = logging.getLogger("backfill")


def _ensure_database() -> None:
    Base.metadata.create_all(get_engine())


def _load_legacy(path: Path) -> Dict[str, object]:
    with path.open(encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{path} does not contain a mapping of storage keys to curricula")
    return payload


def backfill_curricula(path: Path, *, keys: Optional[List[str]] = None, dry_run: bool = False) -> int:
    """Import every (or every selected) storage key; returns the number of keys written."""
    if not path.exists():
        logger.info("No legacy curriculum file found at %s", path)
        return 0
    payload = _load_legacy(path)
    selected = keys or sorted(payload)
    imported = 0
    if not dry_run:
        _ensure_database()
    for key in selected:
        entries = payload.get(key)
        if not isinstance(entries, list):
            logger.warning("Skipping %s; stored value is not a list", key)
            continue
        try:
            lessons = decode_lessons(entries)
        except ValidationError as exc:
            logger.warning("Skipping %s; invalid lesson payload: %s", key, exc)
            continue
        if dry_run:
            logger.info("Would import %d lessons for %s", len(lessons), key)
        else:
            with session_scope() as session:
                curriculum_snapshots.put(session, key, encode_lessons(lessons))
            logger.info("Imported %d lessons for %s", len(lessons), key)
        imported += 1
    return imported


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Backfill legacy JSON curricula into the database.")
    parser.add_argument(
        "--path",
        type=Path,
        default=None,
        help="Legacy JSON file (default: STUDY_PLANNER_LEGACY_STORE_PATH).",
    )
    parser.add_argument(
        "--key",
        action="append",
        dest="keys",
        help="Storage key to import; repeat for several (default: all keys in the file).",
    )
    parser.add_argument("--dry-run", action="store_true", help="Validate without writing to the database.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    args = parse_args(argv)
    path = args.path or get_settings().legacy_store_path
    try:
        count = backfill_curricula(path, keys=args.keys, dry_run=args.dry_run)
    except (OSError, ValueError) as exc:
        logger.error("Backfill failed: %s", exc)
        return 1
    logger.info("Backfill complete; %d curricula processed", count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
