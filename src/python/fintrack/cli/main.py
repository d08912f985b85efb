"""FinTrack CLI entry point."""

from __future__ import annotations

from pathlib import Path

import click

from fintrack.__version__ import __version__
from fintrack.cli.auth import auth
from fintrack.cli.budget import budget
from fintrack.cli.category import category
from fintrack.cli.chat import chat
from fintrack.cli.expense import expense
from fintrack.cli.income import income
from fintrack.cli.savings import savings
from fintrack.cli.summary import summary
from fintrack.config import load_config
from fintrack.exceptions import ValidationError


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="fintrack")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    help="Path to the FinTrack JSON config file.",
)
@click.pass_context
def main(ctx: click.Context, config_path: Path | None) -> None:
    """FinTrack personal finance CLI."""
    try:
        config = load_config(config_path)
    except ValidationError as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.obj = {"config": config}


main.add_command(auth)
main.add_command(income)
main.add_command(expense)
main.add_command(category)
main.add_command(budget)
main.add_command(savings)
main.add_command(summary)
main.add_command(chat)


if __name__ == "__main__":
    main()
