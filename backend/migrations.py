import logging
import os

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from auth import get_password_hash
from models import Profile, StaffRole, SystemConfig
from scoring_service import ensure_scoring_config

logger = logging.getLogger(__name__)

# Columns added after the first deployment: (table, column, DDL type).
LATE_COLUMNS = [
    ("sigaram_profiles", "rights", "JSON"),
    ("sigaram_events", "revised_time", "TIMESTAMP WITH TIME ZONE"),
    ("sigaram_events", "hall", "INTEGER"),
    ("sigaram_events", "format", "VARCHAR(20) DEFAULT 'SINGLE'"),
    ("sigaram_event_participants", "account_id", "INTEGER"),
    ("sigaram_event_participants", "ima_branch_zone", "VARCHAR(150)"),
    ("sigaram_scores", "points", "INTEGER DEFAULT 0"),
]


def ensure_column(engine: Engine, table: str, column: str, ddl_type: str) -> bool:
    inspector = inspect(engine)
    if table not in inspector.get_table_names():
        return False
    existing = {col["name"] for col in inspector.get_columns(table)}
    if column in existing:
        return False
    if engine.dialect.name == "sqlite":
        ddl_type = ddl_type.replace("TIMESTAMP WITH TIME ZONE", "DATETIME")
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl_type}"))
    logger.info("Added %s.%s column", table, column)
    return True


def ensure_late_columns(engine: Engine) -> int:
    return sum(1 for table, column, ddl_type in LATE_COLUMNS if ensure_column(engine, table, column, ddl_type))


def ensure_default_admin(db: Session) -> None:
    email = (os.environ.get("ADMIN_EMAIL") or "").strip().lower()
    password = os.environ.get("ADMIN_PASSWORD")
    if db.query(Profile).filter(Profile.role == StaffRole.ADMIN).first():
        return
    if not email or not password:
        logger.warning("No admin account exists and ADMIN_EMAIL/ADMIN_PASSWORD are not set")
        return
    if len(password) < 8:
        raise RuntimeError("ADMIN_PASSWORD must be at least 8 characters")
    db.add(Profile(
        email=email,
        full_name="Sigaram Admin",
        role=StaffRole.ADMIN,
        hashed_password=get_password_hash(password),
        is_active=True,
    ))
    db.commit()
    logger.info("Default admin created: %s", email)


def ensure_system_defaults(db: Session) -> None:
    reg_config = db.query(SystemConfig).filter(SystemConfig.key == "registration_open").first()
    if not reg_config:
        db.add(SystemConfig(key="registration_open", value="true"))
        db.commit()
    ensure_scoring_config(db)
