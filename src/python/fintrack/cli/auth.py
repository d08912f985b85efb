"""Account CLI commands."""

from __future__ import annotations

import click

from fintrack.cli.common import get_app, run_async


@click.group()
def auth() -> None:
    """Register, log in and log out."""


@auth.command("register")
@click.option("--name", required=True, help="Display name.")
@click.option("--email", required=True, help="Email address used to log in.")
@click.password_option(help="Account password.")
@click.pass_context
def register(ctx: click.Context, name: str, email: str, password: str) -> None:
    """Create an account and log in."""
    app = get_app(ctx)

    async def _run():
        async with app:
            return await app.auth.register(name, email, password)

    user = run_async(_run())
    click.echo(f"Registered {user.email} (id {user.id})")


@auth.command("login")
@click.option("--email", required=True, help="Email address.")
@click.option("--password", prompt=True, hide_input=True, help="Account password.")
@click.pass_context
def login(ctx: click.Context, email: str, password: str) -> None:
    """Log in and remember the user for later commands."""
    app = get_app(ctx)

    async def _run():
        async with app:
            return await app.auth.login(email, password)

    user = run_async(_run())
    click.echo(f"Logged in as {user.name} <{user.email}>")


@auth.command("logout")
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Forget the stored session."""
    app = get_app(ctx)
    app.auth.logout()
    click.echo("Logged out")


@auth.command("whoami")
@click.pass_context
def whoami(ctx: click.Context) -> None:
    """Show the logged-in user."""
    app = get_app(ctx)

    async def _run():
        async with app:
            return await app.auth.restore()

    user = run_async(_run())
    if user is None:
        raise click.ClickException("Not logged in.")
    click.echo(f"{user.id}\t{user.name}\t{user.email}\t{user.role}")
