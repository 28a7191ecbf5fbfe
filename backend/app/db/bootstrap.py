from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from app.db.base import Base
import app.models  # noqa: F401

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "courses": {"id", "title", "code", "semester"},
    "faculty": {"id", "name", "department", "expertise", "max_weekly_sessions", "availability"},
    "rooms": {"id", "name", "capacity"},
    "schedule_versions": {"id", "label", "owner_id", "sessions", "summary", "created_at"},
}


def missing_schema_columns(engine: Engine) -> dict[str, list[str]]:
    with engine.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing: dict[str, list[str]] = {}
        for table_name, columns in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                missing[table_name] = sorted(columns)
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            absent = sorted(columns - existing)
            if absent:
                missing[table_name] = absent
    return missing


def ensure_schema(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)
    missing = missing_schema_columns(engine)
    if missing:
        # create_all never alters existing tables; those need an alembic upgrade.
        logger.warning("Schema is missing columns; run alembic upgrade head | missing=%s", missing)
