"""Database helper utilities for ensuring schema consistency."""
from __future__ import annotations

from typing import Iterable

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .models import StoredValue


def _get_column_names(table_name: str) -> set[str]:
    inspector = inspect(db.engine)
    return {column["name"] for column in inspector.get_columns(table_name)}


def ensure_database_schema() -> None:
    """Ensure the key-value table exists and carries the timestamp columns.

    The function is light-weight so it can run on every application start.
    Databases created before ``updated_at`` was introduced get the column
    added in place.
    """

    try:
        inspector = inspect(db.engine)
        table_names: Iterable[str] = inspector.get_table_names()

        if StoredValue.__tablename__ not in table_names:
            db.create_all()
            return

        columns = _get_column_names(StoredValue.__tablename__)
        if "updated_at" not in columns:
            with db.engine.begin() as connection:
                connection.execute(
                    text("ALTER TABLE stored_values ADD COLUMN updated_at DATETIME")
                )
    except SQLAlchemyError:
        # A partially configured database must stop the application start.
        raise
