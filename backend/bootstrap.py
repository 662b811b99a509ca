from __future__ import annotations

import logging
from datetime import datetime, timezone

from database import Base, SessionLocal, engine
from migrations import ensure_default_admin, ensure_late_columns, ensure_system_defaults
from models import SystemConfig

logger = logging.getLogger(__name__)

MIGRATION_MARKER_KEY = "migration:sigaram_bootstrap:v1"


def has_bootstrap_marker() -> bool:
    db = SessionLocal()
    try:
        marker = db.query(SystemConfig).filter(SystemConfig.key == MIGRATION_MARKER_KEY).first()
        return marker is not None
    finally:
        db.close()


def set_bootstrap_marker() -> None:
    db = SessionLocal()
    try:
        marker = db.query(SystemConfig).filter(SystemConfig.key == MIGRATION_MARKER_KEY).first()
        value = datetime.now(timezone.utc).isoformat()
        if marker:
            marker.value = value
        else:
            db.add(SystemConfig(key=MIGRATION_MARKER_KEY, value=value))
        db.commit()
    finally:
        db.close()


def clear_bootstrap_marker() -> bool:
    db = SessionLocal()
    try:
        marker = db.query(SystemConfig).filter(SystemConfig.key == MIGRATION_MARKER_KEY).first()
        if not marker:
            return False
        db.delete(marker)
        db.commit()
        return True
    finally:
        db.close()


def seed_defaults() -> None:
    db = SessionLocal()
    try:
        ensure_default_admin(db)
        ensure_system_defaults(db)
    finally:
        db.close()


def run_bootstrap_migrations() -> None:
    Base.metadata.create_all(bind=engine)
    added = ensure_late_columns(engine)
    if added:
        logger.info("Added %s missing column(s).", added)
    seed_defaults()
