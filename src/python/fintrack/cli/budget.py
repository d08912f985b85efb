"""Budget CLI commands."""

from __future__ import annotations

import click

from fintrack.cli.common import format_amount, get_app, parse_decimal, resolve_category, run_async


@click.group()
def budget() -> None:
    """Monthly budget commands."""


@budget.command("list")
@click.pass_context
def list_budgets(ctx: click.Context) -> None:
    """Show this month's budgets with spent and remaining amounts."""
    app = get_app(ctx)

    async def _run():
        async with app:
            await app.require_user()
            return app.snapshot

    snapshot = run_async(_run())
    if not snapshot.budgets:
        click.echo(f"No budgets for {snapshot.month:02d}/{snapshot.year}.")
        return
    label = app.config.currency_label
    for item in snapshot.budgets:
        flag = "\tOVER" if item.is_over_budget else ""
        click.echo(
            f"{item.category_id}\t{item.category}\tlimit {format_amount(item.limit, label)}"
            f"\tspent {format_amount(item.spent, label)}"
            f"\tremaining {format_amount(item.remaining, label)}{flag}"
        )


@budget.command("set")
@click.option("--category", required=True, help="Expense category name or id.")
@click.option("--limit", "limit_value", required=True, help="Monthly limit.")
@click.pass_context
def set_budget(ctx: click.Context, category: str, limit_value: str) -> None:
    """Create or update the current month's budget for a category."""
    limit = parse_decimal(limit_value, "--limit")
    app = get_app(ctx)

    async def _run():
        async with app:
            await app.require_user()
            target = resolve_category(app.snapshot.expense_categories, category)
            await app.synchronizer.set_budget(target.id, limit)
            return app.snapshot.budget_for(target.id)

    record = run_async(_run())
    if record is None:
        raise click.ClickException("Budget was saved but could not be reloaded.")
    label = app.config.currency_label
    click.echo(
        f"Budget for {record.category}: {format_amount(record.limit, label)}"
        f" (remaining {format_amount(record.remaining, label)})"
    )
