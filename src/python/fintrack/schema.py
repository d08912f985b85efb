"""Database schema constants."""

from __future__ import annotations

USERS = "users"
INCOMES = "incomes"
EXPENSES = "expenses"
INCOME_CATEGORIES = "income_categories"
EXPENSE_CATEGORIES = "expense_categories"
BUDGETS = "budgets"

TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "category_id",
    "amount",
    "month",
    "year",
    "occurred_on",
    "description",
    "is_recurring",
    "recurrence_type",
]

CATEGORY_COLUMNS = ["id", "name", "user_id"]

TABLE_COLUMNS = {
    USERS: [
        "id",
        "name",
        "email",
        "password_hash",
        "role",
        "created_at",
        "savings_goal",
        "savings_rate",
    ],
    INCOMES: TRANSACTION_COLUMNS,
    EXPENSES: TRANSACTION_COLUMNS,
    INCOME_CATEGORIES: CATEGORY_COLUMNS,
    EXPENSE_CATEGORIES: CATEGORY_COLUMNS,
    BUDGETS: ["id", "user_id", "category_id", "limit_amount", "month", "year"],
}

# Category kind -> backing table
CATEGORY_TABLES = {
    "income": INCOME_CATEGORIES,
    "expense": EXPENSE_CATEGORIES,
}

RECURRENCE_TYPES = ("weekly", "monthly", "yearly")
DEFAULT_RECURRENCE_TYPE = "monthly"

DEFAULT_SAVINGS_GOAL = 0
DEFAULT_SAVINGS_RATE = 20
MIN_SAVINGS_RATE = 0
MAX_SAVINGS_RATE = 100

DEFAULT_ROLE = "client"
DEFAULT_CURRENCY_LABEL = "S/"
UNCATEGORIZED = "Uncategorized"

DEFAULT_INCOME_CATEGORIES = ["Salary", "Freelance", "Investments", "Other"]
DEFAULT_EXPENSE_CATEGORIES = [
    "Food",
    "Transport",
    "Housing",
    "Utilities",
    "Entertainment",
    "Health",
    "Education",
    "Other",
]

_TRANSACTION_DDL = """
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    category_id INTEGER NOT NULL,
    amount NUMERIC NOT NULL,
    month INTEGER NOT NULL,
    year INTEGER NOT NULL,
    occurred_on TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    is_recurring INTEGER NOT NULL DEFAULT 0,
    recurrence_type TEXT
"""

_CATEGORY_DDL = """
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    user_id INTEGER
"""

SQLITE_DDL = [
    f"""
    CREATE TABLE IF NOT EXISTS {USERS} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        email TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT '{DEFAULT_ROLE}',
        created_at TEXT NOT NULL,
        savings_goal NUMERIC NOT NULL DEFAULT {DEFAULT_SAVINGS_GOAL},
        savings_rate INTEGER DEFAULT {DEFAULT_SAVINGS_RATE}
    )
    """,
    f"CREATE TABLE IF NOT EXISTS {INCOMES} ({_TRANSACTION_DDL})",
    f"CREATE TABLE IF NOT EXISTS {EXPENSES} ({_TRANSACTION_DDL})",
    f"CREATE TABLE IF NOT EXISTS {INCOME_CATEGORIES} ({_CATEGORY_DDL})",
    f"CREATE TABLE IF NOT EXISTS {EXPENSE_CATEGORIES} ({_CATEGORY_DDL})",
    f"""
    CREATE TABLE IF NOT EXISTS {BUDGETS} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        category_id INTEGER NOT NULL,
        limit_amount NUMERIC NOT NULL,
        month INTEGER NOT NULL,
        year INTEGER NOT NULL
    )
    """,
    f"CREATE INDEX IF NOT EXISTS idx_{INCOMES}_scope ON {INCOMES} (user_id, year, month)",
    f"CREATE INDEX IF NOT EXISTS idx_{EXPENSES}_scope ON {EXPENSES} (user_id, year, month)",
]
