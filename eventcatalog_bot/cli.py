"""Command line entry point: run the Slack bot server or ask the catalog locally."""

import asyncio
import sys
from typing import NoReturn

import click
import uvicorn
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

from eventcatalog_bot import __version__
from eventcatalog_bot.clients.llm import create_chat_model
from eventcatalog_bot.clients.mcp import CatalogToolProvider, MCPConnectionError
from eventcatalog_bot.config.env import require_provider_key, validate_env
from eventcatalog_bot.config.errors import ConfigError
from eventcatalog_bot.config.loader import load_config
from eventcatalog_bot.config.schema import BotConfig
from eventcatalog_bot.main import create_app
from eventcatalog_bot.models.messages import ConversationMessage
from eventcatalog_bot.services.agent import AgentOptions, run_agent
from eventcatalog_bot.utils.logging import LogConfig, setup_logging

console = Console()


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error: {message}[/red]")
    sys.exit(1)


@click.group()
@click.version_option(__version__, prog_name="eventcatalog-bot")
def main():
    """EventCatalog assistant for Slack."""


@main.command()
@click.option("--config", "config_path", default=None, help="Path to eventcatalog-bot.config.json")
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=3000, show_default=True, type=int)
@click.option("--log-level", default=None, help="Overrides LOG_LEVEL")
def serve(config_path: str | None, host: str, port: int, log_level: str | None):
    """Start the Slack Events API server."""
    setup_logging(LogConfig(level=log_level) if log_level else None)

    try:
        config = load_config(config_path)
        env = validate_env(config.ai.provider)
    except ConfigError as e:
        _fail(str(e))

    console.print(f"[bold]EventCatalog bot[/bold] v{__version__}")
    console.print(f"[dim]Catalog: {config.event_catalog.base_url}[/dim]")
    console.print(f"[dim]Model: {config.ai.provider}/{config.ai.model_id}[/dim]")
    console.print(f"[dim]Listening on http://{host}:{port}/slack/events[/dim]")

    uvicorn.run(create_app(config, env), host=host, port=port, log_level=(log_level or "info").lower())


async def _ask(config: BotConfig, api_key: str, questions: list[str] | None) -> None:
    provider = CatalogToolProvider(config.event_catalog)
    tools = await provider.connect()
    console.print(f"[green]Connected to EventCatalog MCP with {len(tools)} tools[/green]")

    options = AgentOptions(
        model=create_chat_model(config.ai, api_key),
        tool_provider=provider,
        catalog_url=config.event_catalog.base_url,
        max_steps=config.ai.max_steps,
        temperature=config.ai.temperature,
    )

    async def show_status(status: str) -> None:
        console.print(f"[dim]{status}[/dim]")

    history: list[ConversationMessage] = []
    try:
        while True:
            if questions is not None:
                if not questions:
                    break
                question = questions.pop(0)
            else:
                question = (await asyncio.to_thread(Prompt.ask, "\n[bold cyan]You[/bold cyan]")).strip()
                if question.lower() in ("/quit", "/exit", "quit", "exit"):
                    break
                if not question:
                    continue

            response = await run_agent(question, options, history=history, on_status=show_status)

            text = response.text.strip() or "_No response generated._"
            subtitle = f"Tools used: {', '.join(response.tool_names())}" if response.tool_calls else None
            console.print(
                Panel(
                    Markdown(text),
                    title="[bold green]EventCatalog[/bold green]",
                    subtitle=subtitle,
                    border_style="green",
                    padding=(1, 2),
                )
            )

            history.append(ConversationMessage(role="user", content=question))
            if response.text.strip():
                history.append(ConversationMessage(role="assistant", content=response.text))
    finally:
        await provider.close()


@main.command()
@click.argument("question", required=False)
@click.option("--config", "config_path", default=None, help="Path to eventcatalog-bot.config.json")
def ask(question: str | None, config_path: str | None):
    """Ask the catalog a question in the terminal.

    Without QUESTION an interactive session starts; type /quit to leave.
    """
    setup_logging(LogConfig(level="WARNING"))

    try:
        config = load_config(config_path)
        api_key = require_provider_key(config.ai.provider)
    except ConfigError as e:
        _fail(str(e))

    try:
        asyncio.run(_ask(config, api_key, [question] if question else None))
    except MCPConnectionError as e:
        _fail(str(e))
    except KeyboardInterrupt:
        console.print("\n[yellow]Goodbye![/yellow]")


if __name__ == "__main__":
    main()
