"""Category CLI commands."""

from __future__ import annotations

import click

from fintrack.cli.common import get_app, run_async
from fintrack.schema import CATEGORY_TABLES

KIND_OPTION = click.option(
    "--kind",
    type=click.Choice(sorted(CATEGORY_TABLES)),
    default="expense",
    show_default=True,
    help="Category kind.",
)


@click.group()
def category() -> None:
    """Category commands."""


@category.command("list")
@KIND_OPTION
@click.pass_context
def list_categories(ctx: click.Context, kind: str) -> None:
    """List global and personal categories ordered by name.

    Examples:
        fintrack category list
        fintrack category list --kind income
    """
    app = get_app(ctx)

    async def _run():
        async with app:
            await app.require_user()
            return app.snapshot

    snapshot = run_async(_run())
    categories = snapshot.income_categories if kind == "income" else snapshot.expense_categories
    if not categories:
        click.echo("No categories found.")
        return

    click.echo(f"\n{kind.capitalize()} categories:")
    click.echo("-" * 60)
    click.echo(f"{'Id':<6} {'Name':<40} {'Scope':<10}")
    click.echo("-" * 60)
    for item in categories:
        scope = "global" if item.is_global else "personal"
        click.echo(f"{item.id:<6} {item.name:<40} {scope:<10}")
    click.echo("-" * 60)


@category.command("add")
@click.argument("name")
@KIND_OPTION
@click.pass_context
def add_category(ctx: click.Context, name: str, kind: str) -> None:
    """Create a personal category."""
    app = get_app(ctx)

    async def _run():
        async with app:
            await app.require_user()
            return await app.synchronizer.add_category(kind, name)

    record = run_async(_run())
    click.echo(f"Added {kind} category {record.id}: {record.name}")


@category.command("delete")
@click.argument("category_id", type=int)
@KIND_OPTION
@click.option("--yes", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
def delete_category(ctx: click.Context, category_id: int, kind: str, yes: bool) -> None:
    """Delete a personal category. Global categories cannot be deleted."""
    if not yes:
        click.confirm(f"Delete {kind} category {category_id}?", abort=True)
    app = get_app(ctx)

    async def _run():
        async with app:
            await app.require_user()
            await app.synchronizer.delete_category(category_id, kind)
            return app.snapshot

    snapshot = run_async(_run())
    categories = snapshot.income_categories if kind == "income" else snapshot.expense_categories
    remaining = next((item for item in categories if item.id == category_id), None)
    if remaining is not None:
        raise click.ClickException(f"Category {category_id} is not yours to delete.")
    click.echo(f"Deleted {kind} category {category_id}")
