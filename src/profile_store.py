from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Integer, bindparam, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.db import session_scope
from src.default_profile import default_profile

logger = logging.getLogger(__name__)

TABLE_NAME = "portfolio"
_JSON_TYPE = JSON().with_variant(JSONB(), "postgresql")

_POSTGRES_CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS portfolio (
        id SERIAL PRIMARY KEY,
        data JSONB NOT NULL,
        updated_at TIMESTAMP DEFAULT NOW()
    )
"""
_SQLITE_CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS portfolio (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        data JSON NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
"""

_SELECT_CURRENT = text(
    """
    SELECT id, data, updated_at
    FROM portfolio
    ORDER BY id DESC
    LIMIT 1
    """
).columns(id=Integer, data=_JSON_TYPE, updated_at=DateTime)

_INSERT = text("INSERT INTO portfolio (data) VALUES (:data)").bindparams(
    bindparam("data", type_=_JSON_TYPE)
)

_UPDATE = text(
    """
    UPDATE portfolio
    SET data = :data,
        updated_at = CURRENT_TIMESTAMP
    WHERE id = :id
    """
).bindparams(bindparam("data", type_=_JSON_TYPE))


class ProfileStoreError(RuntimeError):
    pass


@dataclass(frozen=True)
class StoredRow:
    id: int
    data: Dict[str, Any]
    updated_at: Optional[datetime]


def _create_table(session: Session) -> None:
    dialect = session.get_bind().dialect.name
    ddl = _POSTGRES_CREATE_TABLE_SQL if dialect == "postgresql" else _SQLITE_CREATE_TABLE_SQL
    session.execute(text(ddl))


def _current_row(session: Session) -> Optional[StoredRow]:
    row = session.execute(_SELECT_CURRENT).first()
    if row is None:
        return None
    return StoredRow(id=row.id, data=row.data, updated_at=row.updated_at)


def ensure_initialized(session: Session) -> Dict[str, Any]:
    """
    Create the table when missing and seed the default document into an empty one.

    Idempotent. Two callers racing on an empty table may both insert a default
    row; readers always take the greatest id so later reads agree.
    """
    _create_table(session)
    current = _current_row(session)
    if current is not None:
        return current.data
    document = default_profile()
    session.execute(_INSERT, {"data": document})
    logger.info("Seeded %s with the default profile document.", TABLE_NAME)
    return document


def load() -> Dict[str, Any]:
    with session_scope() as session:
        return ensure_initialized(session)


def load_or_default() -> Dict[str, Any]:
    try:
        return load()
    except Exception as exc:
        logger.error("Failed to load profile, serving default document: %s", exc, exc_info=True)
        return default_profile()


def current_row() -> Optional[StoredRow]:
    with session_scope() as session:
        return _current_row(session)


def save(document: Dict[str, Any]) -> None:
    """Replace the current document wholesale. Concurrent saves: last commit wins."""
    try:
        with session_scope() as session:
            _create_table(session)
            row_id = session.execute(
                text("SELECT id FROM portfolio ORDER BY id DESC LIMIT 1")
            ).scalar()
            if row_id is None:
                session.execute(_INSERT, {"data": document})
                logger.info("Inserted first profile row.")
            else:
                session.execute(_UPDATE, {"data": document, "id": row_id})
                logger.info("Updated profile row id=%s.", row_id)
    except SQLAlchemyError as exc:
        raise ProfileStoreError("Failed to save profile") from exc
