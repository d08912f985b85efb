"""System integration tests for the finance synchronizer on SQLite."""

from __future__ import annotations

import datetime as dt
from decimal import Decimal

import pytest

from fintrack.exceptions import UnboundError, ValidationError
from fintrack.models import ExpenseDTO, IncomeDTO
from fintrack.schema import EXPENSE_CATEGORIES, EXPENSES, INCOME_CATEGORIES, INCOMES, USERS
from fintrack.synchronizer import FinanceSynchronizer
from tests.utils.assertions import assert_in_period, assert_spent_matches_expenses
from tests.utils.database import category_id, fetch_rows, insert_category, insert_user
from tests.utils.gateways import YieldingGateway


def _expense(amount: str, category: int, day: dt.date = dt.date(2026, 2, 10)) -> ExpenseDTO:
    return ExpenseDTO(occurred_on=day, amount=Decimal(amount), category_id=category)


@pytest.mark.sit
@pytest.mark.asyncio
async def test_bind_empty_store_then_add_expense(repository, db_path, today) -> None:
    """bind(7) on an empty store, then one expense shows up in the snapshot."""
    insert_user(db_path, name="Ana", email="ana@example.com", user_id=7)
    housing = category_id(db_path, EXPENSE_CATEGORIES, "Housing")
    sync = FinanceSynchronizer(repository, today=lambda: today)

    snapshot = await sync.bind(7)

    assert snapshot.loading is False
    assert snapshot.error is None
    assert (snapshot.month, snapshot.year) == (2, 2026)
    assert snapshot.incomes == ()
    assert snapshot.expenses == ()
    assert snapshot.budgets == ()
    assert [c.name for c in snapshot.expense_categories][:2] == ["Education", "Entertainment"]

    record = await sync.add_expense(_expense("120", housing, today))

    assert record.category == "Housing"
    assert len(sync.snapshot.expenses) == 1
    stored = sync.snapshot.expenses[0]
    assert stored.amount == Decimal("120")
    assert stored.category_id == housing
    assert sync.snapshot.total_expenses == Decimal("120")


@pytest.mark.sit
@pytest.mark.asyncio
async def test_budget_spent_is_recomputed_from_expenses(synchronizer, user_id, db_path) -> None:
    food = category_id(db_path, EXPENSE_CATEGORIES, "Food")
    transport = category_id(db_path, EXPENSE_CATEGORIES, "Transport")
    await synchronizer.bind(user_id)

    await synchronizer.add_expense(_expense("50", food))
    await synchronizer.add_expense(_expense("30", food))
    await synchronizer.add_expense(_expense("10", transport))
    await synchronizer.set_budget(food, Decimal("100"))

    budget = synchronizer.snapshot.budget_for(food)
    assert budget.spent == Decimal("80")
    assert budget.remaining == Decimal("20")
    assert budget.category == "Food"
    assert not budget.is_over_budget
    assert_spent_matches_expenses(synchronizer.snapshot)

    await synchronizer.add_expense(_expense("25", food))
    assert synchronizer.snapshot.budget_for(food).is_over_budget
    assert_spent_matches_expenses(synchronizer.snapshot)


@pytest.mark.sit
@pytest.mark.asyncio
async def test_set_budget_updates_existing_row(synchronizer, user_id, db_path) -> None:
    food = category_id(db_path, EXPENSE_CATEGORIES, "Food")
    await synchronizer.bind(user_id)

    await synchronizer.set_budget(food, "100")
    await synchronizer.set_budget(food, "250")

    rows = fetch_rows(db_path, "budgets", user_id=user_id, category_id=food)
    assert len(rows) == 1
    assert synchronizer.snapshot.budget_for(food).limit == Decimal("250")


@pytest.mark.sit
@pytest.mark.asyncio
async def test_adding_same_income_twice_creates_two_records(synchronizer, user_id, db_path) -> None:
    salary = category_id(db_path, INCOME_CATEGORIES, "Salary")
    await synchronizer.bind(user_id)
    income = IncomeDTO(occurred_on=dt.date(2026, 2, 1), amount=Decimal("1500"), category_id=salary)

    await synchronizer.add_income(income)
    await synchronizer.add_income(income)

    assert len(synchronizer.snapshot.incomes) == 2
    assert synchronizer.snapshot.total_income == Decimal("3000")


@pytest.mark.sit
@pytest.mark.asyncio
async def test_other_month_records_are_not_loaded(synchronizer, user_id, db_path) -> None:
    food = category_id(db_path, EXPENSE_CATEGORIES, "Food")
    await synchronizer.bind(user_id)

    await synchronizer.add_expense(_expense("40", food, dt.date(2026, 1, 31)))
    await synchronizer.add_expense(_expense("15", food, dt.date(2025, 2, 10)))
    await synchronizer.add_expense(_expense("5", food, dt.date(2026, 2, 1)))

    assert [e.amount for e in synchronizer.snapshot.expenses] == [Decimal("5")]
    assert len(fetch_rows(db_path, EXPENSES, user_id=user_id)) == 3
    assert_in_period(synchronizer.snapshot)


@pytest.mark.sit
@pytest.mark.asyncio
async def test_records_are_newest_first(synchronizer, user_id, db_path) -> None:
    food = category_id(db_path, EXPENSE_CATEGORIES, "Food")
    await synchronizer.bind(user_id)
    for day in (3, 12, 7):
        await synchronizer.add_expense(_expense("1", food, dt.date(2026, 2, day)))

    assert [e.occurred_on.day for e in synchronizer.snapshot.expenses] == [12, 7, 3]


@pytest.mark.sit
@pytest.mark.asyncio
async def test_other_users_data_is_invisible(synchronizer, user_id, db_path, today) -> None:
    other = insert_user(db_path, name="Luis", email="luis@example.com")
    food = category_id(db_path, EXPENSE_CATEGORIES, "Food")
    insert_category(db_path, EXPENSE_CATEGORIES, "Luis only", user_id=other)
    other_sync = FinanceSynchronizer(synchronizer.gateway, today=lambda: today)
    await other_sync.bind(other)
    await other_sync.add_expense(_expense("99", food))

    snapshot = await synchronizer.bind(user_id)

    assert snapshot.expenses == ()
    assert "Luis only" not in [c.name for c in snapshot.expense_categories]


@pytest.mark.sit
@pytest.mark.asyncio
async def test_delete_category_checks_ownership(synchronizer, user_id, db_path) -> None:
    other = insert_user(db_path, name="Luis", email="luis@example.com")
    foreign = insert_category(db_path, EXPENSE_CATEGORIES, "Pets", user_id=other)
    food = category_id(db_path, EXPENSE_CATEGORIES, "Food")
    await synchronizer.bind(user_id)
    own = await synchronizer.add_category("expense", "Gym")
    await synchronizer.drain()

    await synchronizer.delete_category(foreign)
    await synchronizer.delete_category(food)
    await synchronizer.delete_category(own.id)

    assert fetch_rows(db_path, EXPENSE_CATEGORIES, id=foreign)
    assert fetch_rows(db_path, EXPENSE_CATEGORIES, id=food)
    assert not fetch_rows(db_path, EXPENSE_CATEGORIES, id=own.id)
    assert own.id not in [c.id for c in synchronizer.snapshot.expense_categories]


@pytest.mark.sit
@pytest.mark.asyncio
async def test_delete_records_checks_ownership(synchronizer, user_id, db_path, today) -> None:
    other = insert_user(db_path, name="Luis", email="luis@example.com")
    salary = category_id(db_path, INCOME_CATEGORIES, "Salary")
    other_sync = FinanceSynchronizer(synchronizer.gateway, today=lambda: today)
    await other_sync.bind(other)
    foreign = await other_sync.add_income(
        IncomeDTO(occurred_on=dt.date(2026, 2, 1), amount=Decimal("10"), category_id=salary)
    )
    await synchronizer.bind(user_id)
    own = await synchronizer.add_income(
        IncomeDTO(occurred_on=dt.date(2026, 2, 1), amount=Decimal("20"), category_id=salary)
    )

    await synchronizer.delete_income(foreign.id)
    await synchronizer.delete_income(own.id)

    assert fetch_rows(db_path, INCOMES, id=foreign.id)
    assert not fetch_rows(db_path, INCOMES, id=own.id)
    assert synchronizer.snapshot.incomes == ()


@pytest.mark.sit
@pytest.mark.asyncio
async def test_add_category_reloads_in_background(synchronizer, user_id) -> None:
    await synchronizer.bind(user_id)

    record = await synchronizer.add_category("income", "  Bonus ")

    assert record.name == "Bonus"
    assert record.owner_id == user_id
    await synchronizer.drain()
    names = [c.name for c in synchronizer.snapshot.income_categories]
    assert "Bonus" in names
    assert names == sorted(names)


@pytest.mark.sit
@pytest.mark.asyncio
async def test_add_category_validation(synchronizer, user_id) -> None:
    await synchronizer.bind(user_id)

    with pytest.raises(ValidationError):
        await synchronizer.add_category("income", "   ")
    with pytest.raises(ValidationError):
        await synchronizer.add_category("savings", "Rainy day")


@pytest.mark.sit
@pytest.mark.asyncio
async def test_savings_goal_edit_does_not_reload(repository, user_id, db_path, today) -> None:
    gateway = YieldingGateway(repository)
    sync = FinanceSynchronizer(gateway, today=lambda: today)
    await sync.bind(user_id)
    selects_before = [call for call in gateway.calls if call[0] == "select"]

    await sync.set_savings_goal(5000)
    await sync.set_savings_rate(35)

    assert [call for call in gateway.calls if call[0] == "select"] == selects_before
    assert sync.snapshot.savings_goal == Decimal("5000")
    assert sync.snapshot.savings_rate == 35
    row = fetch_rows(db_path, USERS, id=user_id)[0]
    assert Decimal(str(row["savings_goal"])) == Decimal("5000")
    assert row["savings_rate"] == 35


@pytest.mark.sit
@pytest.mark.asyncio
async def test_settings_validation(synchronizer, user_id) -> None:
    await synchronizer.bind(user_id)

    with pytest.raises(ValidationError):
        await synchronizer.set_savings_rate(101)
    with pytest.raises(ValidationError):
        await synchronizer.set_savings_goal("-5")
    assert synchronizer.snapshot.savings_rate == 20


@pytest.mark.sit
@pytest.mark.asyncio
async def test_null_savings_rate_defaults(repository, db_path, today) -> None:
    user = insert_user(db_path, name="Eva", email="eva@example.com", savings_rate=None)
    sync = FinanceSynchronizer(repository, today=lambda: today)

    snapshot = await sync.bind(user)

    assert snapshot.savings_rate == 20
    assert snapshot.savings_goal == Decimal("0")


@pytest.mark.sit
@pytest.mark.asyncio
async def test_mutations_require_bound_user(synchronizer) -> None:
    with pytest.raises(UnboundError):
        await synchronizer.add_expense(_expense("1", 1))
    with pytest.raises(UnboundError):
        await synchronizer.delete_income(1)
    with pytest.raises(UnboundError):
        await synchronizer.set_budget(1, 10)
    with pytest.raises(UnboundError):
        await synchronizer.set_savings_goal(10)

    snapshot = await synchronizer.reload()
    assert snapshot.user_id is None
    assert snapshot.loading is True


@pytest.mark.sit
@pytest.mark.asyncio
async def test_unbind_clears_snapshot(synchronizer, user_id) -> None:
    await synchronizer.bind(user_id)

    synchronizer.unbind()

    assert synchronizer.user_id is None
    assert synchronizer.snapshot.user_id is None
    assert synchronizer.snapshot.expense_categories == ()
    assert synchronizer.snapshot.loading is False


@pytest.mark.sit
@pytest.mark.asyncio
async def test_period_follows_the_clock(repository, user_id, db_path) -> None:
    food = category_id(db_path, EXPENSE_CATEGORIES, "Food")
    clock = [dt.date(2026, 2, 28)]
    sync = FinanceSynchronizer(repository, today=lambda: clock[0])
    await sync.bind(user_id)
    await sync.add_expense(_expense("7", food, dt.date(2026, 3, 1)))
    assert sync.snapshot.expenses == ()

    clock[0] = dt.date(2026, 3, 1)
    snapshot = await sync.reload()

    assert (snapshot.month, snapshot.year) == (3, 2026)
    assert [e.amount for e in snapshot.expenses] == [Decimal("7")]


@pytest.mark.sit
@pytest.mark.asyncio
async def test_listeners_receive_published_snapshots(synchronizer, user_id) -> None:
    seen = []
    unsubscribe = synchronizer.subscribe(seen.append)

    await synchronizer.bind(user_id)

    assert seen[0].loading is True
    assert seen[-1].loading is False
    assert seen[-1] is synchronizer.snapshot

    unsubscribe()
    count = len(seen)
    await synchronizer.reload()
    assert len(seen) == count
