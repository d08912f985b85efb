"""SQLite repository implementation for FinTrack."""

from __future__ import annotations

from pathlib import Path
import datetime as dt
from decimal import Decimal
import logging
import sqlite3
from typing import Any, Sequence

from fintrack.exceptions import GatewayError
from fintrack.persistence import (
    Eq,
    Filter,
    NullOrEq,
    PersistenceBackend,
    validate_columns,
)
from fintrack.schema import (
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_INCOME_CATEGORIES,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    SQLITE_DDL,
)

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def _to_sql_value(value: Any) -> Any:
    """Convert Python values to types sqlite3 can bind."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    return value


class Repository(PersistenceBackend):
    """SQLite-backed persistence implementation."""

    def __init__(self, db_path: str | Path = MEMORY_DB, seed_defaults: bool = False) -> None:
        """Create a repository for the given database path."""
        self.db_path = db_path if db_path == MEMORY_DB else Path(db_path)
        self.seed_defaults = seed_defaults
        self.connection: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Open the database connection and create missing tables."""
        if self.connection is not None:
            return
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.connection = sqlite3.connect(self.db_path)
            self.connection.row_factory = sqlite3.Row
            with self.connection:
                for statement in SQLITE_DDL:
                    self.connection.execute(statement)
            if self.seed_defaults:
                self._seed_global_categories()
        except sqlite3.Error as exc:
            raise GatewayError(str(exc)) from exc

    def close(self) -> None:
        """Close the database connection."""
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    async def select(
        self,
        table: str,
        columns: Sequence[str] = ("*",),
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Return matching rows as dictionaries."""
        names = validate_columns(table, columns)
        where, params = self._build_where(table, filters)
        sql = f"SELECT {', '.join(names)} FROM {table}{where}"
        if order_by is not None:
            validate_columns(table, [order_by])
            sql += f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}, id {'DESC' if descending else 'ASC'}"
        rows = self._execute(sql, params).fetchall()
        return [dict(row) for row in rows]

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        """Insert a row and return the stored row."""
        names = validate_columns(table, record.keys())
        placeholders = ", ".join("?" for _ in names)
        sql = f"INSERT INTO {table} ({', '.join(names)}) VALUES ({placeholders})"
        cursor = self._execute(
            sql,
            [_to_sql_value(record[name]) for name in names],
            commit=True,
        )
        row = self._execute(
            f"SELECT * FROM {table} WHERE id = ?",
            (cursor.lastrowid,),
        ).fetchone()
        return dict(row)

    async def update(
        self,
        table: str,
        filters: Sequence[Filter],
        patch: dict[str, Any],
    ) -> None:
        """Apply a patch to matching rows."""
        names = validate_columns(table, patch.keys())
        if not names:
            return
        assignments = ", ".join(f"{name} = ?" for name in names)
        where, params = self._build_where(table, filters)
        values = [_to_sql_value(patch[name]) for name in names]
        self._execute(f"UPDATE {table} SET {assignments}{where}", values + params, commit=True)

    async def delete(self, table: str, filters: Sequence[Filter]) -> None:
        """Delete matching rows."""
        where, params = self._build_where(table, filters)
        self._execute(f"DELETE FROM {table}{where}", params, commit=True)

    def _build_where(self, table: str, filters: Sequence[Filter]) -> tuple[str, list[Any]]:
        """Translate filter predicates into a WHERE clause."""
        clauses: list[str] = []
        params: list[Any] = []
        for item in filters:
            validate_columns(table, [item.column])
            if isinstance(item, NullOrEq):
                clauses.append(f"({item.column} IS NULL OR {item.column} = ?)")
                params.append(_to_sql_value(item.value))
            elif isinstance(item, Eq) and item.value is None:
                clauses.append(f"{item.column} IS NULL")
            elif isinstance(item, Eq):
                clauses.append(f"{item.column} = ?")
                params.append(_to_sql_value(item.value))
            else:
                raise TypeError(f"Unsupported filter: {item!r}")
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def _execute(self, sql: str, params: Sequence[Any], commit: bool = False) -> sqlite3.Cursor:
        """Run a statement, wrapping sqlite errors as gateway errors."""
        self._ensure_connection()
        try:
            if commit:
                with self.connection:
                    return self.connection.execute(sql, params)
            return self.connection.execute(sql, params)
        except sqlite3.Error as exc:
            logger.error("SQLite statement failed: %s", exc)
            raise GatewayError(str(exc)) from exc

    def _ensure_connection(self) -> None:
        """Ensure the connection is initialized before use."""
        if self.connection is None:
            raise GatewayError("Repository connection is not initialized")

    def _seed_global_categories(self) -> None:
        """Insert the shared categories when the tables are empty."""
        for table, names in (
            (INCOME_CATEGORIES, DEFAULT_INCOME_CATEGORIES),
            (EXPENSE_CATEGORIES, DEFAULT_EXPENSE_CATEGORIES),
        ):
            row = self.connection.execute(f"SELECT COUNT(*) FROM {table}").fetchone()
            if row[0]:
                continue
            with self.connection:
                self.connection.executemany(
                    f"INSERT INTO {table} (name, user_id) VALUES (?, NULL)",
                    [(name,) for name in names],
                )
