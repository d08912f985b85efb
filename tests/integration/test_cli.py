"""Integration tests for the fintrack CLI on a temporary SQLite store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from fintrack.assistant import MISSING_KEY_MESSAGE
from fintrack.cli.main import main


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "db_path": str(tmp_path / "cli.db"),
                "session_path": str(tmp_path / "session.json"),
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture()
def invoke(config_path: Path):
    runner = CliRunner()
    env = {
        "FINTRACK_CONFIG": str(config_path),
        "FINTRACK_DB_PATH": None,
        "GROQ_API_KEY": None,
    }

    def _invoke(*args: str):
        return runner.invoke(main, list(args), env=env)

    return _invoke


@pytest.fixture()
def logged_in(invoke):
    result = invoke("auth", "register", "--name", "Ana", "--email", "ana@example.com",
                    "--password", "secret")
    assert result.exit_code == 0, result.output
    return invoke


@pytest.mark.sit
def test_version_and_help(invoke) -> None:
    result = invoke("--version")
    assert result.exit_code == 0
    assert "fintrack" in result.output

    result = invoke("-h")
    assert result.exit_code == 0
    for command in ("auth", "income", "expense", "category", "budget", "savings", "summary", "chat"):
        assert command in result.output


@pytest.mark.sit
def test_commands_require_login(invoke) -> None:
    result = invoke("summary")

    assert result.exit_code == 1
    assert "Not logged in" in result.output


@pytest.mark.sit
def test_auth_flow(invoke) -> None:
    result = invoke("auth", "register", "--name", "Ana", "--email", "Ana@Example.com",
                    "--password", "secret")
    assert result.exit_code == 0, result.output
    assert "Registered ana@example.com" in result.output

    assert "ana@example.com" in invoke("auth", "whoami").output
    assert invoke("auth", "logout").exit_code == 0
    assert invoke("auth", "whoami").exit_code == 1

    bad = invoke("auth", "login", "--email", "ana@example.com", "--password", "nope")
    assert bad.exit_code == 1
    assert "Incorrect email or password" in bad.output

    good = invoke("auth", "login", "--email", "ana@example.com", "--password", "secret")
    assert good.exit_code == 0
    assert "Logged in as Ana" in good.output

    duplicate = invoke("auth", "register", "--name", "Ana", "--email", "ana@example.com",
                       "--password", "x")
    assert duplicate.exit_code == 1
    assert "already registered" in duplicate.output


@pytest.mark.sit
def test_expense_budget_and_summary(logged_in) -> None:
    invoke = logged_in

    result = invoke("expense", "add", "--amount", "50", "--category", "Food",
                    "--description", "Groceries")
    assert result.exit_code == 0, result.output
    assert "Added expense 1: S/ 50.00 (Food)" in result.output

    result = invoke("budget", "set", "--category", "food", "--limit", "40")
    assert result.exit_code == 0, result.output
    assert "Budget for Food: S/ 40.00 (remaining S/ 0.00)" in result.output

    result = invoke("expense", "add", "--amount", "5", "--category", "Food")
    assert "Warning: Food is over budget (S/ 55.00 of S/ 40.00)" in result.output

    result = invoke("budget", "list")
    assert "spent S/ 55.00" in result.output
    assert "OVER" in result.output

    result = invoke("summary")
    assert result.exit_code == 0, result.output
    assert "S/ 55.00" in result.output
    assert "Over budget:" in result.output
    assert "Groceries" in result.output

    result = invoke("expense", "list")
    assert len(result.output.strip().splitlines()) == 2

    assert invoke("expense", "delete", "1", "--yes").exit_code == 0
    assert len(invoke("expense", "list").output.strip().splitlines()) == 1


@pytest.mark.sit
def test_income_and_savings(logged_in) -> None:
    invoke = logged_in

    result = invoke("income", "add", "--amount", "1000", "--category", "Salary", "--recurring")
    assert result.exit_code == 0, result.output
    assert "S/ 1,000.00 (Salary)" in result.output
    assert "[monthly]" in invoke("income", "list").output

    assert invoke("savings", "goal", "2500").exit_code == 0
    result = invoke("savings", "rate", "30")
    assert "Savings rate set to 30%" in result.output
    assert invoke("savings", "rate", "150").exit_code == 1

    result = invoke("savings", "show", "--months", "3")
    assert result.exit_code == 0, result.output
    assert "Savings this month: S/ 1,000.00 (100.0% of income)" in result.output
    assert "Savings goal: S/ 2,500.00 (40.0% reached)" in result.output
    assert "recommended S/ 300.00" in result.output
    assert "Months to goal: 3" in result.output
    assert "month  3: S/ 3,000.00" in result.output


@pytest.mark.sit
def test_invalid_input_is_reported(logged_in) -> None:
    invoke = logged_in

    result = invoke("expense", "add", "--amount", "abc", "--category", "Food")
    assert result.exit_code == 2
    assert "--amount" in result.output

    result = invoke("expense", "add", "--amount", "-3", "--category", "Food")
    assert result.exit_code == 1
    assert "must not be negative" in result.output

    result = invoke("expense", "add", "--amount", "3", "--category", "Yachts")
    assert result.exit_code == 1
    assert "not found" in result.output

    result = invoke("income", "add", "--amount", "3", "--category", "Salary",
                    "--recurrence", "weekly")
    assert result.exit_code == 2


@pytest.mark.sit
def test_categories(logged_in) -> None:
    invoke = logged_in

    result = invoke("category", "add", "Pets")
    assert result.exit_code == 0, result.output
    assert "Added expense category" in result.output

    listing = invoke("category", "list").output
    pets = next(line for line in listing.splitlines() if "Pets" in line)
    assert "personal" in pets
    food = next(line for line in listing.splitlines() if "Food" in line)
    assert "global" in food

    result = invoke("category", "delete", food.split()[0], "--yes")
    assert result.exit_code == 1
    assert "not yours" in result.output

    result = invoke("category", "delete", pets.split()[0], "--yes")
    assert result.exit_code == 0
    assert "Pets" not in invoke("category", "list").output

    assert "Salary" in invoke("category", "list", "--kind", "income").output


@pytest.mark.sit
def test_chat_without_api_key(logged_in) -> None:
    result = logged_in("chat", "How much did I spend?")

    assert result.exit_code == 0
    assert MISSING_KEY_MESSAGE in result.output
