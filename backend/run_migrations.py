from __future__ import annotations

import argparse
import logging
import sys

from sqlalchemy import inspect

from bootstrap import (
    MIGRATION_MARKER_KEY,
    clear_bootstrap_marker,
    has_bootstrap_marker,
    run_bootstrap_migrations,
    set_bootstrap_marker,
)
from database import Base, engine
from migrations import LATE_COLUMNS

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create Sigaram tables, add late columns and seed defaults.")
    parser.add_argument("--force", action="store_true", help="Run even if the bootstrap marker already exists.")
    parser.add_argument(
        "--clear-marker",
        action="store_true",
        help=f"Clear marker `{MIGRATION_MARKER_KEY}` before running.",
    )
    parser.add_argument("--clear-only", action="store_true", help="Clear the marker and exit.")
    parser.add_argument(
        "--check",
        action="store_true",
        help="Report missing tables and late columns without changing anything.",
    )
    return parser.parse_args()


def pending_changes() -> list[str]:
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    pending = [f"table {name}" for name in Base.metadata.tables if name not in tables]
    for table, column, _ in LATE_COLUMNS:
        if table in tables and column not in {col["name"] for col in inspector.get_columns(table)}:
            pending.append(f"column {table}.{column}")
    return pending


def main() -> int:
    args = parse_args()

    if args.check:
        pending = pending_changes()
        for item in pending:
            logger.info("Missing %s", item)
        logger.info("%s pending change(s).", len(pending))
        return 1 if pending else 0

    # The marker lives in system_config, which a fresh database does not have yet.
    Base.metadata.create_all(bind=engine)

    if args.clear_marker or args.clear_only:
        if clear_bootstrap_marker():
            logger.info("Cleared marker `%s`.", MIGRATION_MARKER_KEY)
        else:
            logger.info("Marker `%s` was already absent.", MIGRATION_MARKER_KEY)
        if args.clear_only:
            return 0

    if has_bootstrap_marker() and not args.force:
        logger.info("Marker `%s` exists; nothing to do. Use --force to rerun.", MIGRATION_MARKER_KEY)
        return 0

    run_bootstrap_migrations()
    set_bootstrap_marker()
    logger.info("Bootstrap complete; marker `%s` updated.", MIGRATION_MARKER_KEY)
    return 0


if __name__ == "__main__":
    sys.exit(main())
