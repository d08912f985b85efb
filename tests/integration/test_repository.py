from __future__ import annotations

from decimal import Decimal

import pytest

from fintrack.exceptions import GatewayError, ValidationError
from fintrack.persistence import Eq, NullOrEq
from fintrack.repository import Repository
from fintrack.schema import (
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_INCOME_CATEGORIES,
    EXPENSE_CATEGORIES,
    EXPENSES,
    INCOME_CATEGORIES,
)
from tests.utils.database import insert_category


def _expense_row(user_id: int, amount: str, day: str = "2026-02-10", **overrides) -> dict:
    row = {
        "user_id": user_id,
        "category_id": 1,
        "amount": Decimal(amount),
        "month": 2,
        "year": 2026,
        "occurred_on": day,
        "description": "",
        "is_recurring": False,
        "recurrence_type": None,
    }
    row.update(overrides)
    return row


@pytest.mark.sit
def test_connect_seeds_global_categories_once(db_path) -> None:
    with Repository(db_path, seed_defaults=True):
        pass
    with Repository(db_path, seed_defaults=True) as repo:
        rows = repo.connection.execute(
            f"SELECT name, user_id FROM {EXPENSE_CATEGORIES}"
        ).fetchall()
        income_count = repo.connection.execute(
            f"SELECT COUNT(*) FROM {INCOME_CATEGORIES}"
        ).fetchone()[0]

    assert [row["name"] for row in rows] == DEFAULT_EXPENSE_CATEGORIES
    assert all(row["user_id"] is None for row in rows)
    assert income_count == len(DEFAULT_INCOME_CATEGORIES)


@pytest.mark.sit
@pytest.mark.asyncio
async def test_insert_returns_stored_row(repository) -> None:
    row = await repository.insert(EXPENSES, _expense_row(7, "12.50", is_recurring=True,
                                                        recurrence_type="weekly"))

    assert row["id"] > 0
    assert Decimal(str(row["amount"])) == Decimal("12.50")
    assert row["is_recurring"] == 1
    assert row["recurrence_type"] == "weekly"


@pytest.mark.sit
@pytest.mark.asyncio
async def test_select_filters_and_ordering(repository) -> None:
    await repository.insert(EXPENSES, _expense_row(7, "1", day="2026-02-01"))
    await repository.insert(EXPENSES, _expense_row(7, "2", day="2026-02-20"))
    await repository.insert(EXPENSES, _expense_row(8, "3", day="2026-02-05"))

    rows = await repository.select(
        EXPENSES,
        columns=("amount", "occurred_on"),
        filters=[Eq("user_id", 7), Eq("month", 2)],
        order_by="occurred_on",
        descending=True,
    )

    assert [row["occurred_on"] for row in rows] == ["2026-02-20", "2026-02-01"]
    assert set(rows[0]) == {"amount", "occurred_on"}


@pytest.mark.sit
@pytest.mark.asyncio
async def test_null_or_eq_matches_global_and_owned(repository, db_path) -> None:
    insert_category(db_path, EXPENSE_CATEGORIES, "Mine", user_id=7)
    insert_category(db_path, EXPENSE_CATEGORIES, "Theirs", user_id=8)

    rows = await repository.select(EXPENSE_CATEGORIES, filters=[NullOrEq("user_id", 7)])
    names = {row["name"] for row in rows}
    owned = await repository.select(EXPENSE_CATEGORIES, filters=[Eq("user_id", None)])

    assert "Mine" in names
    assert "Theirs" not in names
    assert "Food" in names
    assert len(owned) == len(DEFAULT_EXPENSE_CATEGORIES)


@pytest.mark.sit
@pytest.mark.asyncio
async def test_update_and_delete(repository) -> None:
    row = await repository.insert(EXPENSES, _expense_row(7, "5"))

    await repository.update(EXPENSES, [Eq("id", row["id"])], {"description": "lunch"})
    updated = await repository.select_one(EXPENSES, filters=[Eq("id", row["id"])])
    assert updated["description"] == "lunch"

    await repository.delete(EXPENSES, [Eq("id", row["id"]), Eq("user_id", 8)])
    assert await repository.select_one(EXPENSES, filters=[Eq("id", row["id"])]) is not None

    await repository.delete(EXPENSES, [Eq("id", row["id"]), Eq("user_id", 7)])
    assert await repository.select_one(EXPENSES, filters=[Eq("id", row["id"])]) is None


@pytest.mark.sit
@pytest.mark.asyncio
async def test_unknown_table_or_column(repository) -> None:
    with pytest.raises(ValidationError):
        await repository.select("accounts")
    with pytest.raises(ValidationError):
        await repository.insert(EXPENSES, {"payee": "x"})
    with pytest.raises(ValidationError):
        await repository.select(EXPENSES, order_by="payee")


@pytest.mark.sit
@pytest.mark.asyncio
async def test_constraint_violation_is_gateway_error(repository) -> None:
    with pytest.raises(GatewayError):
        await repository.insert(EXPENSES, {"user_id": 7})


@pytest.mark.sit
@pytest.mark.asyncio
async def test_requires_connection(db_path) -> None:
    repo = Repository(db_path)
    with pytest.raises(GatewayError):
        await repo.select(EXPENSES)
