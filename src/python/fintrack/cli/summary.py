"""Monthly summary CLI command."""

from __future__ import annotations

import click

from fintrack import aggregates
from fintrack.cli.common import format_amount, get_app, run_async


@click.command()
@click.option("--recent", type=int, default=aggregates.RECENT_TRANSACTIONS_LIMIT, show_default=True,
              help="Number of recent transactions to show.")
@click.pass_context
def summary(ctx: click.Context, recent: int) -> None:
    """Show the current month's dashboard."""
    app = get_app(ctx)

    async def _run():
        async with app:
            user = await app.require_user()
            return user, app.snapshot

    user, snapshot = run_async(_run())
    label = app.config.currency_label

    click.echo(f"{user.name} - {snapshot.month:02d}/{snapshot.year}")
    click.echo("-" * 40)
    click.echo(f"{'Income':<12}{format_amount(snapshot.total_income, label):>28}")
    click.echo(f"{'Expenses':<12}{format_amount(snapshot.total_expenses, label):>28}")
    click.echo(f"{'Balance':<12}{format_amount(snapshot.balance, label):>28}")
    click.echo("-" * 40)

    breakdown = aggregates.spending_by_category_name(snapshot.expenses)
    if breakdown:
        click.echo("\nSpending by category:")
        for name, amount in sorted(breakdown.items(), key=lambda item: item[1], reverse=True):
            click.echo(f"  {name:<24}{format_amount(amount, label):>16}")

    alerts = aggregates.over_budget(snapshot.budgets)
    if alerts:
        click.echo("\nOver budget:")
        for item in alerts:
            click.echo(
                f"  {item.category}: {format_amount(item.spent, label)}"
                f" of {format_amount(item.limit, label)}"
            )

    feed = aggregates.recent_transactions(snapshot.incomes, snapshot.expenses, limit=recent)
    if feed:
        click.echo("\nRecent transactions:")
        for item in feed:
            sign = "+" if item.kind == "income" else "-"
            record = item.record
            click.echo(
                f"  {record.occurred_on.isoformat()}  {sign}{format_amount(record.amount, label)}"
                f"  {record.category}  {record.description}"
            )
