"""Savings CLI commands."""

from __future__ import annotations

import click

from fintrack import aggregates
from fintrack.cli.common import format_amount, get_app, parse_decimal, run_async


@click.group()
def savings() -> None:
    """Savings goal and rate commands."""


@savings.command("show")
@click.option("--months", type=int, default=aggregates.DEFAULT_PROJECTION_MONTHS, show_default=True,
              help="Months to project.")
@click.pass_context
def show_savings(ctx: click.Context, months: int) -> None:
    """Show savings figures and a projection at the current pace."""
    app = get_app(ctx)

    async def _run():
        async with app:
            await app.require_user()
            return app.snapshot

    snapshot = run_async(_run())
    label = app.config.currency_label
    monthly = aggregates.savings(snapshot)
    click.echo(f"Savings this month: {format_amount(monthly, label)}"
               f" ({aggregates.savings_percent(snapshot):.1f}% of income)")
    click.echo(f"Savings goal: {format_amount(snapshot.savings_goal, label)}"
               f" ({aggregates.goal_progress(snapshot):.1f}% reached)")
    click.echo(f"Savings rate: {snapshot.savings_rate}%"
               f" (recommended {format_amount(aggregates.recommended_savings(snapshot), label)})")

    needed = aggregates.months_to_goal(monthly, snapshot.savings_goal)
    if needed is None:
        click.echo("Goal not reachable at the current pace.")
    elif needed:
        click.echo(f"Months to goal: {needed}")

    click.echo("\nProjection:")
    for index, amount in aggregates.savings_projection(monthly, months)[1:]:
        click.echo(f"  month {index:>2}: {format_amount(amount, label)}")


@savings.command("goal")
@click.argument("amount_value")
@click.pass_context
def set_goal(ctx: click.Context, amount_value: str) -> None:
    """Set the savings goal amount."""
    amount = parse_decimal(amount_value, "AMOUNT")
    app = get_app(ctx)

    async def _run():
        async with app:
            await app.require_user()
            await app.synchronizer.set_savings_goal(amount)
            return app.synchronizer.snapshot

    snapshot = run_async(_run())
    click.echo(f"Savings goal set to {format_amount(snapshot.savings_goal, app.config.currency_label)}")


@savings.command("rate")
@click.argument("rate", type=int)
@click.pass_context
def set_rate(ctx: click.Context, rate: int) -> None:
    """Set the savings rate percentage (0-100)."""
    app = get_app(ctx)

    async def _run():
        async with app:
            await app.require_user()
            await app.synchronizer.set_savings_rate(rate)
            return app.synchronizer.snapshot

    snapshot = run_async(_run())
    click.echo(f"Savings rate set to {snapshot.savings_rate}%")
