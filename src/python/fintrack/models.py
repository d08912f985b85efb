"""Domain models and data transfer objects."""

from __future__ import annotations

from dataclasses import dataclass, field
import datetime as dt
from decimal import Decimal, InvalidOperation
from typing import Any

from fintrack.exceptions import ValidationError
from fintrack.schema import (
    DEFAULT_RECURRENCE_TYPE,
    DEFAULT_SAVINGS_GOAL,
    DEFAULT_SAVINGS_RATE,
    RECURRENCE_TYPES,
    UNCATEGORIZED,
)


def _ensure_date(value: dt.date | dt.datetime | str) -> dt.date:
    """Normalize a date, datetime or ISO string to a date."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip()[:10])
        except ValueError as exc:
            raise ValidationError(f"Invalid date: {value!r}") from exc
    raise ValidationError("Date must be a datetime.date")


def parse_amount(value: Decimal | str | int | float, field_name: str) -> Decimal:
    """Parse and validate non-negative decimal values."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a decimal")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field_name} must be a decimal") from exc
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")
    if amount < Decimal("0"):
        raise ValidationError(f"{field_name} must not be negative")
    return amount


def parse_int(value: Any, field_name: str) -> int:
    """Parse an integer identifier or period component."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_name} must be an integer") from exc


def _optional_int(value: Any) -> int | None:
    """Integer foreign key, None when the referenced row is gone."""
    return int(value) if value is not None else None


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Convert a stored numeric value to Decimal, tolerating nulls."""
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return default


class BaseTransactionDTO:
    """Shared validation behavior for transaction DTOs."""

    occurred_on: dt.date
    amount: Decimal
    category_id: int
    description: str
    is_recurring: bool
    recurrence_type: str | None

    def _validate_base_fields(self) -> None:
        object.__setattr__(self, "occurred_on", _ensure_date(self.occurred_on))
        object.__setattr__(self, "amount", parse_amount(self.amount, "Amount"))
        object.__setattr__(self, "category_id", parse_int(self.category_id, "Category"))
        object.__setattr__(self, "description", (self.description or "").strip())
        object.__setattr__(self, "is_recurring", bool(self.is_recurring))
        self._validate_recurrence()

    def _validate_recurrence(self) -> None:
        """A recurrence type is only meaningful on recurring records."""
        if not self.is_recurring:
            if self.recurrence_type is not None:
                raise ValidationError("recurrence_type requires is_recurring")
            return
        if self.recurrence_type is None:
            object.__setattr__(self, "recurrence_type", DEFAULT_RECURRENCE_TYPE)
        if self.recurrence_type not in RECURRENCE_TYPES:
            raise ValidationError(
                f"recurrence_type must be one of {', '.join(RECURRENCE_TYPES)}"
            )

    @property
    def month(self) -> int:
        return self.occurred_on.month

    @property
    def year(self) -> int:
        return self.occurred_on.year

    def to_row(self, user_id: int) -> dict[str, Any]:
        """Build the gateway row, deriving month/year from the date."""
        return {
            "user_id": user_id,
            "category_id": self.category_id,
            "amount": self.amount,
            "month": self.month,
            "year": self.year,
            "occurred_on": self.occurred_on.isoformat(),
            "description": self.description,
            "is_recurring": self.is_recurring,
            "recurrence_type": self.recurrence_type,
        }


@dataclass(frozen=True)
class IncomeDTO(BaseTransactionDTO):
    """Validated income input for persistence."""
    occurred_on: dt.date
    amount: Decimal
    category_id: int
    description: str = ""
    is_recurring: bool = False
    recurrence_type: str | None = None

    def __post_init__(self) -> None:
        self._validate_base_fields()


@dataclass(frozen=True)
class ExpenseDTO(BaseTransactionDTO):
    """Validated expense input for persistence."""
    occurred_on: dt.date
    amount: Decimal
    category_id: int
    description: str = ""
    is_recurring: bool = False
    recurrence_type: str | None = None

    def __post_init__(self) -> None:
        self._validate_base_fields()


@dataclass(frozen=True)
class TransactionRecord:
    """Persisted income or expense row."""
    id: int
    amount: Decimal
    description: str
    occurred_on: dt.date
    category_id: int | None
    month: int
    year: int
    category: str = UNCATEGORIZED
    is_recurring: bool = False
    recurrence_type: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any], category_names: dict[int, str] | None = None):
        category_id = _optional_int(row.get("category_id"))
        names = category_names or {}
        return cls(
            id=int(row["id"]),
            amount=to_decimal(row.get("amount")),
            description=row.get("description") or "",
            occurred_on=_ensure_date(row["occurred_on"]),
            category_id=category_id,
            month=int(row["month"]),
            year=int(row["year"]),
            category=names.get(category_id, UNCATEGORIZED),
            is_recurring=bool(row.get("is_recurring")),
            recurrence_type=row.get("recurrence_type") or None,
        )


@dataclass(frozen=True)
class IncomeRecord(TransactionRecord):
    """Persisted income record from storage."""


@dataclass(frozen=True)
class ExpenseRecord(TransactionRecord):
    """Persisted expense record from storage."""


@dataclass(frozen=True)
class CategoryRecord:
    """Income or expense category.

    A null owner_id marks a global category shared by every user.
    """
    id: int
    name: str
    owner_id: int | None = None

    @property
    def is_global(self) -> bool:
        return self.owner_id is None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CategoryRecord":
        owner = row.get("user_id")
        return cls(
            id=int(row["id"]),
            name=row.get("name") or "",
            owner_id=int(owner) if owner is not None else None,
        )


@dataclass(frozen=True)
class BudgetRecord:
    """Monthly spending limit for one expense category.

    spent is derived from the expenses loaded in the same reload and is
    never persisted.
    """
    id: int
    category_id: int | None
    owner_id: int
    month: int
    year: int
    limit: Decimal
    spent: Decimal = Decimal("0")
    category: str = UNCATEGORIZED

    @property
    def remaining(self) -> Decimal:
        return max(Decimal("0"), self.limit - self.spent)

    @property
    def is_over_budget(self) -> bool:
        return self.limit > 0 and self.spent > self.limit

    @classmethod
    def from_row(
        cls,
        row: dict[str, Any],
        category_names: dict[int, str] | None = None,
    ) -> "BudgetRecord":
        category_id = _optional_int(row.get("category_id"))
        names = category_names or {}
        return cls(
            id=int(row["id"]),
            category_id=category_id,
            owner_id=int(row["user_id"]),
            month=int(row["month"]),
            year=int(row["year"]),
            limit=to_decimal(row.get("limit_amount")),
            category=names.get(category_id, UNCATEGORIZED),
        )


@dataclass(frozen=True)
class UserSettings:
    """Savings preferences stored on the user row."""
    savings_goal: Decimal = Decimal(DEFAULT_SAVINGS_GOAL)
    savings_rate: int = DEFAULT_SAVINGS_RATE

    @classmethod
    def from_row(cls, row: dict[str, Any] | None) -> "UserSettings":
        if not row:
            return cls()
        rate = row.get("savings_rate")
        return cls(
            savings_goal=to_decimal(row.get("savings_goal"), Decimal(DEFAULT_SAVINGS_GOAL)),
            savings_rate=int(rate) if rate is not None else DEFAULT_SAVINGS_RATE,
        )


@dataclass(frozen=True)
class UserRecord:
    """Authenticated user identity."""
    id: int
    name: str
    email: str
    role: str

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "UserRecord":
        return cls(
            id=int(row["id"]),
            name=row.get("name") or "",
            email=row.get("email") or "",
            role=row.get("role") or "",
        )


@dataclass(frozen=True)
class Snapshot:
    """Immutable view of one user's current-month financial data.

    A reload replaces the whole snapshot; only the savings setters patch a
    single field.
    """
    user_id: int | None = None
    incomes: tuple[IncomeRecord, ...] = ()
    expenses: tuple[ExpenseRecord, ...] = ()
    income_categories: tuple[CategoryRecord, ...] = ()
    expense_categories: tuple[CategoryRecord, ...] = ()
    budgets: tuple[BudgetRecord, ...] = ()
    savings_goal: Decimal = Decimal(DEFAULT_SAVINGS_GOAL)
    savings_rate: int = DEFAULT_SAVINGS_RATE
    month: int | None = None
    year: int | None = None
    loading: bool = True
    error: str | None = None
    loaded_at: dt.datetime | None = field(default=None, compare=False)

    @property
    def total_income(self) -> Decimal:
        return sum((record.amount for record in self.incomes), Decimal("0"))

    @property
    def total_expenses(self) -> Decimal:
        return sum((record.amount for record in self.expenses), Decimal("0"))

    @property
    def balance(self) -> Decimal:
        return self.total_income - self.total_expenses

    def budget_for(self, category_id: int) -> BudgetRecord | None:
        for budget in self.budgets:
            if budget.category_id == category_id:
                return budget
        return None
