"""Client-side synchronizer between the finance snapshot and the gateway."""

from __future__ import annotations

import asyncio
from dataclasses import replace
import datetime as dt
import logging
import os
from typing import Callable

from fintrack.aggregates import attach_spent
from fintrack.exceptions import GatewayError, UnboundError, ValidationError
from fintrack.models import (
    BudgetRecord,
    CategoryRecord,
    ExpenseDTO,
    ExpenseRecord,
    IncomeDTO,
    IncomeRecord,
    Snapshot,
    UserSettings,
    parse_amount,
    parse_int,
)
from fintrack.persistence import Eq, NullOrEq, PersistenceBackend
from fintrack.schema import (
    BUDGETS,
    CATEGORY_TABLES,
    EXPENSE_CATEGORIES,
    EXPENSES,
    INCOME_CATEGORIES,
    INCOMES,
    MAX_SAVINGS_RATE,
    MIN_SAVINGS_RATE,
    USERS,
)

# Configure logging
logger = logging.getLogger("fintrack")
log_level = os.environ.get('LOGGING_LEVEL', 'INFO').upper()
logger.setLevel(getattr(logging, log_level, logging.INFO))
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(levelname)s - %(name)s - %(message)s'))
    logger.addHandler(handler)

SnapshotListener = Callable[[Snapshot], None]


class FinanceSynchronizer:
    """Own the snapshot of one user's current-month finances.

    Every mutation writes through the gateway and then reloads the whole
    snapshot. The savings setters are the exception: they patch the single
    field after a successful write.

    Reloads are tagged with the bind generation that started them. A reload
    that completes after the user was rebound is discarded, as is one that
    completes after a newer reload has already been applied.
    """

    def __init__(
        self,
        gateway: PersistenceBackend,
        today: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self.gateway = gateway
        self._today = today
        self.user_id: int | None = None
        self.snapshot = Snapshot()
        self._generation = 0
        self._reload_ticket = 0
        self._applied_ticket = 0
        self._listeners: list[SnapshotListener] = []
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a callback run after every snapshot replacement."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def current_period(self) -> tuple[int, int]:
        """Return (month, year) for the scoping period."""
        today = self._today()
        return today.month, today.year

    async def bind(self, user_id: int) -> Snapshot:
        """Scope the synchronizer to a user and load their data."""
        user_id = parse_int(user_id, "User id")
        self._generation += 1
        if user_id != self.user_id:
            self.user_id = user_id
            self._publish(Snapshot(user_id=user_id, loading=True))
        return await self.reload()

    def unbind(self) -> None:
        """Drop the bound user and the snapshot, e.g. on logout."""
        self._generation += 1
        self.user_id = None
        self._publish(Snapshot(loading=False))

    async def reload(self) -> Snapshot:
        """Replace the snapshot with freshly loaded data.

        Failures are recorded on the snapshot's error field and never raised.
        """
        if self.user_id is None:
            logger.warning("Reload skipped: no user bound")
            return self.snapshot

        generation = self._generation
        self._reload_ticket += 1
        ticket = self._reload_ticket
        user_id = self.user_id
        month, year = self.current_period()
        self._publish(replace(self.snapshot, loading=True, error=None))

        try:
            income_category_rows = await self.gateway.select(
                INCOME_CATEGORIES,
                filters=[NullOrEq("user_id", user_id)],
                order_by="name",
            )
            expense_category_rows = await self.gateway.select(
                EXPENSE_CATEGORIES,
                filters=[NullOrEq("user_id", user_id)],
                order_by="name",
            )
            income_rows = await self.gateway.select(
                INCOMES,
                filters=self._period_filters(user_id, month, year),
                order_by="occurred_on",
                descending=True,
            )
            expense_rows = await self.gateway.select(
                EXPENSES,
                filters=self._period_filters(user_id, month, year),
                order_by="occurred_on",
                descending=True,
            )
            budget_rows = await self.gateway.select(
                BUDGETS,
                filters=self._period_filters(user_id, month, year),
            )
            settings_row = await self.gateway.select_one(
                USERS,
                columns=("savings_goal", "savings_rate"),
                filters=[Eq("id", user_id)],
            )
            snapshot = self._build_snapshot(
                user_id,
                month,
                year,
                income_category_rows,
                expense_category_rows,
                income_rows,
                expense_rows,
                budget_rows,
                settings_row,
            )
        except (GatewayError, ValueError, TypeError, KeyError) as exc:
            if self._is_stale(generation, ticket):
                return self.snapshot
            logger.error("Error loading data for user %s: %s", user_id, exc)
            self._applied_ticket = ticket
            self._publish(replace(self.snapshot, loading=False, error=str(exc) or repr(exc)))
            return self.snapshot

        if self._is_stale(generation, ticket):
            logger.debug("Discarding stale reload for user %s", user_id)
            return self.snapshot

        self._applied_ticket = ticket
        self._publish(snapshot)
        return self.snapshot

    @staticmethod
    def _build_snapshot(
        user_id: int,
        month: int,
        year: int,
        income_category_rows: list[dict],
        expense_category_rows: list[dict],
        income_rows: list[dict],
        expense_rows: list[dict],
        budget_rows: list[dict],
        settings_row: dict | None,
    ) -> Snapshot:
        """Map gateway rows to records; malformed rows raise ValueError, TypeError or KeyError."""
        income_categories = tuple(CategoryRecord.from_row(row) for row in income_category_rows)
        expense_categories = tuple(CategoryRecord.from_row(row) for row in expense_category_rows)
        income_names = {category.id: category.name for category in income_categories}
        expense_names = {category.id: category.name for category in expense_categories}

        expenses = tuple(ExpenseRecord.from_row(row, expense_names) for row in expense_rows)
        budgets = attach_spent(
            (BudgetRecord.from_row(row, expense_names) for row in budget_rows),
            expenses,
        )
        settings = UserSettings.from_row(settings_row)
        return Snapshot(
            user_id=user_id,
            incomes=tuple(IncomeRecord.from_row(row, income_names) for row in income_rows),
            expenses=expenses,
            income_categories=income_categories,
            expense_categories=expense_categories,
            budgets=budgets,
            savings_goal=settings.savings_goal,
            savings_rate=settings.savings_rate,
            month=month,
            year=year,
            loading=False,
            error=None,
            loaded_at=dt.datetime.now(),
        )

    async def drain(self) -> None:
        """Wait for reloads scheduled in the background."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def add_income(self, income: IncomeDTO) -> IncomeRecord:
        """Persist an income and reload."""
        user_id = self._require_user()
        try:
            row = await self.gateway.insert(INCOMES, income.to_row(user_id))
        except GatewayError as exc:
            logger.error("Error adding income: %s", exc)
            raise
        await self.reload()
        return IncomeRecord.from_row(row, self._category_names(self.snapshot.income_categories))

    async def add_expense(self, expense: ExpenseDTO) -> ExpenseRecord:
        """Persist an expense and reload."""
        user_id = self._require_user()
        try:
            row = await self.gateway.insert(EXPENSES, expense.to_row(user_id))
        except GatewayError as exc:
            logger.error("Error adding expense: %s", exc)
            raise
        await self.reload()
        return ExpenseRecord.from_row(row, self._category_names(self.snapshot.expense_categories))

    async def delete_income(self, record_id: int) -> None:
        await self._delete_owned(INCOMES, record_id)

    async def delete_expense(self, record_id: int) -> None:
        await self._delete_owned(EXPENSES, record_id)

    async def add_category(self, kind: str, name: str) -> CategoryRecord:
        """Create a category owned by the bound user.

        The created category is returned right away; the reload runs in the
        background (see drain()).
        """
        user_id = self._require_user()
        table = self._category_table(kind)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required")
        try:
            row = await self.gateway.insert(table, {"name": name, "user_id": user_id})
        except GatewayError as exc:
            logger.error("Error adding %s category: %s", kind, exc)
            raise
        self._schedule_reload()
        return CategoryRecord.from_row(row)

    async def delete_category(self, category_id: int, kind: str = "expense") -> None:
        """Delete a category owned by the bound user; global ones are untouched."""
        await self._delete_owned(self._category_table(kind), category_id)

    async def set_budget(self, category_id: int, limit) -> None:
        """Create or update the current month's budget for a category.

        The existence check and the write are separate gateway calls, so two
        concurrent calls for the same category can both insert.
        """
        user_id = self._require_user()
        category_id = parse_int(category_id, "Category")
        limit = parse_amount(limit, "Budget limit")
        month, year = self.current_period()
        try:
            existing = await self.gateway.select_one(
                BUDGETS,
                columns=("id",),
                filters=[
                    Eq("user_id", user_id),
                    Eq("category_id", category_id),
                    Eq("month", month),
                    Eq("year", year),
                ],
            )
            if existing is not None:
                await self.gateway.update(
                    BUDGETS,
                    [Eq("id", existing["id"])],
                    {"limit_amount": limit},
                )
            else:
                await self.gateway.insert(
                    BUDGETS,
                    {
                        "user_id": user_id,
                        "category_id": category_id,
                        "limit_amount": limit,
                        "month": month,
                        "year": year,
                    },
                )
        except GatewayError as exc:
            logger.error("Error saving budget: %s", exc)
            raise
        await self.reload()

    async def set_savings_goal(self, value) -> None:
        user_id = self._require_user()
        goal = parse_amount(value, "Savings goal")
        await self._update_user(user_id, {"savings_goal": goal})
        self._publish(replace(self.snapshot, savings_goal=goal))

    async def set_savings_rate(self, value) -> None:
        user_id = self._require_user()
        rate = parse_int(value, "Savings rate")
        if not MIN_SAVINGS_RATE <= rate <= MAX_SAVINGS_RATE:
            raise ValidationError(
                f"Savings rate must be between {MIN_SAVINGS_RATE} and {MAX_SAVINGS_RATE}"
            )
        await self._update_user(user_id, {"savings_rate": rate})
        self._publish(replace(self.snapshot, savings_rate=rate))

    def _require_user(self) -> int:
        if self.user_id is None:
            raise UnboundError()
        return self.user_id

    def _is_stale(self, generation: int, ticket: int) -> bool:
        return generation != self._generation or ticket < self._applied_ticket

    def _publish(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot
        for listener in list(self._listeners):
            listener(snapshot)

    def _schedule_reload(self) -> None:
        task = asyncio.create_task(self.reload())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _delete_owned(self, table: str, record_id: int) -> None:
        user_id = self._require_user()
        record_id = parse_int(record_id, "Record id")
        try:
            await self.gateway.delete(table, [Eq("id", record_id), Eq("user_id", user_id)])
        except GatewayError as exc:
            logger.error("Error deleting from %s: %s", table, exc)
            raise
        await self.reload()

    async def _update_user(self, user_id: int, patch: dict) -> None:
        try:
            await self.gateway.update(USERS, [Eq("id", user_id)], patch)
        except GatewayError as exc:
            logger.error("Error updating settings: %s", exc)
            raise

    @staticmethod
    def _period_filters(user_id: int, month: int, year: int) -> list[Eq]:
        return [Eq("user_id", user_id), Eq("month", month), Eq("year", year)]

    @staticmethod
    def _category_table(kind: str) -> str:
        table = CATEGORY_TABLES.get(kind)
        if table is None:
            raise ValidationError(f"Category kind must be one of {', '.join(CATEGORY_TABLES)}")
        return table

    @staticmethod
    def _category_names(categories) -> dict[int, str]:
        return {category.id: category.name for category in categories}
