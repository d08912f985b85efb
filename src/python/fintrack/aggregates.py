"""Derived financial figures computed from a snapshot."""

from __future__ import annotations

from dataclasses import dataclass, replace
import datetime as dt
from decimal import Decimal
from typing import Iterable, Sequence

from fintrack.models import (
    BudgetRecord,
    ExpenseRecord,
    IncomeRecord,
    Snapshot,
    TransactionRecord,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
RECENT_TRANSACTIONS_LIMIT = 5
DEFAULT_PROJECTION_MONTHS = 12


@dataclass(frozen=True)
class RecentTransaction:
    """Income or expense row tagged with its kind for a merged feed."""
    kind: str
    record: TransactionRecord

    @property
    def occurred_on(self) -> dt.date:
        return self.record.occurred_on


def total_amount(records: Iterable[TransactionRecord]) -> Decimal:
    return sum((record.amount for record in records), ZERO)


def spent_by_category(expenses: Iterable[ExpenseRecord]) -> dict[int | None, Decimal]:
    """Sum expense amounts per category id."""
    totals: dict[int | None, Decimal] = {}
    for expense in expenses:
        totals[expense.category_id] = totals.get(expense.category_id, ZERO) + expense.amount
    return totals


def spending_by_category_name(expenses: Iterable[ExpenseRecord]) -> dict[str, Decimal]:
    """Sum expense amounts per category label, for breakdown charts."""
    totals: dict[str, Decimal] = {}
    for expense in expenses:
        totals[expense.category] = totals.get(expense.category, ZERO) + expense.amount
    return totals


def attach_spent(
    budgets: Iterable[BudgetRecord],
    expenses: Sequence[ExpenseRecord],
) -> tuple[BudgetRecord, ...]:
    """Return budgets with spent recomputed from the given expense list."""
    totals = spent_by_category(expenses)
    return tuple(
        replace(budget, spent=totals.get(budget.category_id, ZERO)) for budget in budgets
    )


def over_budget(budgets: Iterable[BudgetRecord]) -> list[BudgetRecord]:
    return [budget for budget in budgets if budget.is_over_budget]


def savings(snapshot: Snapshot) -> Decimal:
    return snapshot.total_income - snapshot.total_expenses


def savings_percent(snapshot: Snapshot) -> Decimal:
    """Share of income left after expenses, as a percentage."""
    income = snapshot.total_income
    if income <= 0:
        return ZERO
    return savings(snapshot) / income * HUNDRED


def goal_progress(snapshot: Snapshot) -> Decimal:
    """Progress towards the savings goal, capped at 100."""
    if snapshot.savings_goal <= 0:
        return ZERO
    return min(savings(snapshot) / snapshot.savings_goal * HUNDRED, HUNDRED)


def recommended_savings(snapshot: Snapshot) -> Decimal:
    return snapshot.total_income * Decimal(snapshot.savings_rate) / HUNDRED


def recent_transactions(
    incomes: Iterable[IncomeRecord],
    expenses: Iterable[ExpenseRecord],
    limit: int = RECENT_TRANSACTIONS_LIMIT,
) -> list[RecentTransaction]:
    """Merge incomes and expenses, newest first."""
    merged = [RecentTransaction("income", record) for record in incomes]
    merged.extend(RecentTransaction("expense", record) for record in expenses)
    merged.sort(key=lambda item: item.occurred_on, reverse=True)
    return merged[:limit]


def savings_projection(
    monthly_saving: Decimal,
    months: int = DEFAULT_PROJECTION_MONTHS,
) -> list[tuple[int, Decimal]]:
    """Accumulated savings for months 0..months at a constant monthly rate.

    A negative monthly saving projects as zero growth.
    """
    step = monthly_saving if monthly_saving > 0 else ZERO
    return [(index, step * index) for index in range(months + 1)]


def months_to_goal(monthly_saving: Decimal, goal: Decimal) -> int | None:
    """Whole months needed to reach the goal, None when it is unreachable."""
    if goal <= 0:
        return 0
    if monthly_saving <= 0:
        return None
    months, remainder = divmod(goal, monthly_saving)
    return int(months) + (1 if remainder else 0)
