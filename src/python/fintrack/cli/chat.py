"""Assistant chat CLI command."""

from __future__ import annotations

import click

from fintrack.assistant import (
    GREETING,
    AssistantToolBridge,
    FinanceAssistant,
    OpenAICompatibleClient,
    PLACEHOLDER_API_KEYS,
)
from fintrack.cli.common import FinanceApp, get_app, run_async

EXIT_WORDS = {"exit", "quit"}


def build_assistant(app: FinanceApp, user_id: int) -> FinanceAssistant:
    config = app.config
    key = config.inference_api_key
    inference = None
    if key and key.strip() not in PLACEHOLDER_API_KEYS:
        inference = OpenAICompatibleClient(key, base_url=config.inference_base_url)
    return FinanceAssistant(
        AssistantToolBridge(app.gateway, user_id),
        inference,
        key,
        model=config.model,
        currency_label=config.currency_label,
    )


@click.command()
@click.argument("message", required=False)
@click.pass_context
def chat(ctx: click.Context, message: str | None) -> None:
    """Ask the assistant about your finances.

    With MESSAGE, answer once and exit. Without it, start an interactive
    session; type 'exit' to leave.
    """
    app = get_app(ctx)

    async def _run():
        async with app:
            user = await app.require_user()
            assistant = build_assistant(app, user.id)
            if message is not None:
                click.echo(await assistant.send(message))
                return
            click.echo(GREETING)
            while True:
                text = click.prompt("you", prompt_suffix="> ", default="", show_default=False)
                if text.strip().lower() in EXIT_WORDS:
                    return
                if not text.strip():
                    continue
                click.echo(await assistant.send(text))

    run_async(_run())
