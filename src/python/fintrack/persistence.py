"""Persistence gateway interface shared by the storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from fintrack.exceptions import ValidationError
from fintrack.schema import TABLE_COLUMNS


@dataclass(frozen=True)
class Eq:
    """Equality predicate. A None value matches null columns."""
    column: str
    value: Any


@dataclass(frozen=True)
class NullOrEq:
    """Match rows where the column is null or equals the value.

    Used for "global or owned by me" category visibility.
    """
    column: str
    value: Any


Filter = Eq | NullOrEq


def validate_table(table: str) -> list[str]:
    """Return the known columns of a table or reject it."""
    columns = TABLE_COLUMNS.get(table)
    if columns is None:
        raise ValidationError(f"Unknown table: {table}")
    return columns


def validate_columns(table: str, columns: Iterable[str]) -> list[str]:
    """Reject column names the table does not define."""
    known = validate_table(table)
    names = list(columns)
    for name in names:
        if name != "*" and name not in known:
            raise ValidationError(f"Unknown column {name!r} for table {table}")
    return names


class PersistenceBackend(ABC):
    """Abstract interface for the remote or local record store.

    Every data operation is a coroutine so callers suspend only at gateway
    boundaries. Implementations raise GatewayError for backend failures.
    """

    def __enter__(self) -> "PersistenceBackend":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @abstractmethod
    def connect(self) -> None:
        """Establish a backend connection."""

    @abstractmethod
    def close(self) -> None:
        """Close the backend connection."""

    @abstractmethod
    async def select(
        self,
        table: str,
        columns: Sequence[str] = ("*",),
        filters: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Return rows matching every filter."""

    @abstractmethod
    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        """Insert a row and return it with its assigned id."""

    @abstractmethod
    async def update(
        self,
        table: str,
        filters: Sequence[Filter],
        patch: dict[str, Any],
    ) -> None:
        """Apply patch to rows matching every filter."""

    @abstractmethod
    async def delete(self, table: str, filters: Sequence[Filter]) -> None:
        """Delete rows matching every filter."""

    async def select_one(
        self,
        table: str,
        columns: Sequence[str] = ("*",),
        filters: Sequence[Filter] = (),
    ) -> dict[str, Any] | None:
        """Return the first matching row or None."""
        rows = await self.select(table, columns=columns, filters=filters)
        return rows[0] if rows else None
