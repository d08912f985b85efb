"""Expense CLI commands."""

from __future__ import annotations

import datetime as dt

import click

from fintrack.cli.common import (
    echo_transactions,
    format_amount,
    get_app,
    parse_date,
    parse_decimal,
    resolve_category,
    run_async,
)
from fintrack.models import ExpenseDTO
from fintrack.schema import RECURRENCE_TYPES


@click.group()
def expense() -> None:
    """Expense commands."""


@expense.command("add")
@click.option("--amount", "amount_value", required=True, help="Expense amount.")
@click.option("--category", required=True, help="Expense category name or id.")
@click.option("--date", "date_value", default=None, help="Expense date in YYYY-MM-DD (default today).")
@click.option("--description", default="", help="Free-text description.")
@click.option("--recurring", is_flag=True, help="Mark the expense as recurring.")
@click.option(
    "--recurrence",
    type=click.Choice(RECURRENCE_TYPES),
    default=None,
    help="Recurrence period for recurring expenses.",
)
@click.pass_context
def add_expense(
    ctx: click.Context,
    amount_value: str,
    category: str,
    date_value: str | None,
    description: str,
    recurring: bool,
    recurrence: str | None,
) -> None:
    """Add expense."""
    date = parse_date(date_value, "--date") or dt.date.today()
    amount = parse_decimal(amount_value, "--amount")
    if recurrence is not None and not recurring:
        raise click.BadParameter("Requires --recurring.", param_hint="--recurrence")
    app = get_app(ctx)

    async def _run():
        async with app:
            await app.require_user()
            target = resolve_category(app.snapshot.expense_categories, category)
            return await app.synchronizer.add_expense(
                ExpenseDTO(
                    occurred_on=date,
                    amount=amount,
                    category_id=target.id,
                    description=description,
                    is_recurring=recurring,
                    recurrence_type=recurrence,
                )
            )

    record = run_async(_run())
    label = app.config.currency_label
    click.echo(f"Added expense {record.id}: {format_amount(record.amount, label)} ({record.category})")
    budget = app.synchronizer.snapshot.budget_for(record.category_id)
    if budget is not None and budget.is_over_budget:
        click.echo(
            f"Warning: {budget.category} is over budget"
            f" ({format_amount(budget.spent, label)} of {format_amount(budget.limit, label)})"
        )


@expense.command("list")
@click.option("--limit", type=int, default=None, help="Limit results.")
@click.pass_context
def list_expenses(ctx: click.Context, limit: int | None) -> None:
    """List this month's expenses, newest first."""
    app = get_app(ctx)

    async def _run():
        async with app:
            await app.require_user()
            return app.snapshot

    snapshot = run_async(_run())
    records = list(snapshot.expenses)
    if limit is not None:
        records = records[:limit]
    if not records:
        click.echo("No expenses this month.")
        return
    echo_transactions(records, app.config.currency_label)


@expense.command("delete")
@click.argument("record_id", type=int)
@click.option("--yes", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def delete_expense(ctx: click.Context, record_id: int, yes: bool) -> None:
    """Delete an expense record by id."""
    if not yes:
        click.confirm(f"Delete expense {record_id}?", abort=True)
    app = get_app(ctx)

    async def _run():
        async with app:
            await app.require_user()
            await app.synchronizer.delete_expense(record_id)

    run_async(_run())
    click.echo(f"Deleted expense {record_id}")
