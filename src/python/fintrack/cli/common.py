"""Shared CLI helpers."""

from __future__ import annotations

import asyncio
import datetime as dt
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Iterable, TypeVar

import click

from fintrack.auth import AuthManager
from fintrack.config import AppConfig, build_gateway
from fintrack.exceptions import (
    GatewayError,
    NotAuthenticatedError,
    UnboundError,
    ValidationError,
)
from fintrack.models import CategoryRecord, Snapshot, TransactionRecord, UserRecord
from fintrack.session import SessionStore
from fintrack.synchronizer import FinanceSynchronizer

T = TypeVar("T")


def parse_date(value: str | None, field_name: str) -> dt.date | None:
    """Parse an ISO date string into a date."""
    if value is None:
        return None
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise click.BadParameter("Use YYYY-MM-DD format.", param_hint=field_name) from exc


def parse_decimal(value: str | None, field_name: str) -> Decimal | None:
    """Parse a decimal string into a Decimal."""
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise click.BadParameter("Use a valid decimal value.", param_hint=field_name) from exc


def format_amount(value: Decimal, currency_label: str) -> str:
    return f"{currency_label} {value:,.2f}"


def resolve_category(categories: Iterable[CategoryRecord], value: str) -> CategoryRecord:
    """Find a category by id or by case-insensitive name."""
    items = list(categories)
    if value.isdigit():
        for category in items:
            if category.id == int(value):
                return category
    matches = [category for category in items if category.name.lower() == value.lower()]
    if not matches:
        raise click.ClickException(f"Category {value!r} not found.")
    if len(matches) > 1:
        ids = ", ".join(str(category.id) for category in matches)
        raise click.ClickException(f"Category name {value!r} is ambiguous; use an id ({ids}).")
    return matches[0]


def echo_transactions(records: Iterable[TransactionRecord], currency_label: str) -> None:
    for record in records:
        recurring = f"\t[{record.recurrence_type}]" if record.is_recurring else ""
        click.echo(
            f"{record.id}\t{record.occurred_on.isoformat()}\t"
            f"{format_amount(record.amount, currency_label)}\t{record.category}"
            f"\t{record.description}{recurring}"
        )


def run_async(awaitable: Awaitable[T]) -> T:
    """Run a coroutine, turning library errors into CLI errors."""
    try:
        return asyncio.run(awaitable)
    except (GatewayError, ValidationError, NotAuthenticatedError, UnboundError) as exc:
        raise click.ClickException(str(exc)) from exc


class FinanceApp:
    """Wire the gateway, session, auth manager and synchronizer together."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config
        self.gateway = build_gateway(config)
        self.auth = AuthManager(self.gateway, SessionStore(config.session_path))
        self.synchronizer = FinanceSynchronizer(self.gateway)

    async def __aenter__(self) -> "FinanceApp":
        self.gateway.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await self.synchronizer.drain()
        finally:
            self.gateway.close()

    async def require_user(self) -> UserRecord:
        """Restore the session and bind the synchronizer to its user."""
        user = await self.auth.restore()
        if user is None:
            raise click.ClickException("Not logged in. Run 'fintrack auth login' first.")
        snapshot = await self.synchronizer.bind(user.id)
        self._raise_for_error(snapshot)
        return user

    @property
    def snapshot(self) -> Snapshot:
        snapshot = self.synchronizer.snapshot
        self._raise_for_error(snapshot)
        return snapshot

    @staticmethod
    def _raise_for_error(snapshot: Snapshot) -> None:
        if snapshot.error:
            raise click.ClickException(f"Failed to load data: {snapshot.error}")


def get_app(ctx: click.Context) -> FinanceApp:
    """Build the application from Click context."""
    payload: dict[str, Any] = ctx.obj or {}
    try:
        return FinanceApp(payload["config"])
    except GatewayError as exc:
        raise click.ClickException(str(exc)) from exc
