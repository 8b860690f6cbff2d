"""
Command-line entry point.

Examples:
  gaiabot console --player Steve
  gaiabot tools
  gaiabot commands
  gaiabot config

The console runs the full chat pipeline against an in-process world; replies are
printed the way they would appear in game chat.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
import orjson

from Gaiabot.app import BotApp
from Gaiabot.command_loader import load_all_commands
from Gaiabot.commanding import ChatCommand, all_commands
from Gaiabot.config import Settings, load_settings
from Gaiabot.logging import redact_settings, setup_logging
from Gaiabot.world_inprocess import InProcessSession, InProcessWorld, demo_world
from Gaiabot.world_tools import WorldToolSet


def _preflight() -> None:
    if not Path("config.toml").exists() and not Path(".env").exists():
        msg = click.style(
            "WARNING: Could not find 'config.toml' or '.env' in the current directory.",
            fg="yellow",
            bold=True,
        )
        hint = "Continuing with default settings."
        click.echo(f"{msg}\n{hint}", err=True)


def _dump(data) -> str:
    return orjson.dumps(data, option=orjson.OPT_INDENT_2, default=str).decode("utf-8")


async def _turn(app: BotApp, player: str, line: str) -> None:
    app.on_chat(player, line)
    await app.handler.join()
    await app.responder.drain()


def run_console(settings: Settings, player: str, lines=None, *, llm=None) -> InProcessSession:
    """Drive a BotApp from ``lines`` (stdin by default) until EOF or Ctrl-C."""
    world = demo_world(player, username=settings.bot_username)
    session = InProcessSession(world, echo=click.echo)
    with asyncio.Runner() as runner:
        app = BotApp(settings, session, llm=llm)
        runner.run(app.on_spawn())
        try:
            source = lines if lines is not None else click.get_text_stream("stdin")
            for raw in source:
                line = raw.rstrip("\n")
                if not line.strip():
                    continue
                click.echo(f"<{player}> {line}")
                runner.run(_turn(app, player, line))
        except KeyboardInterrupt:
            click.echo("Shutting down bot...", err=True)
        finally:
            runner.run(app.shutdown())
    return session


@click.group()
def cli() -> None:
    """Gaiabot: a Minecraft chat agent with a tool-calling planner."""


@cli.command()
@click.option("--player", default="Steve", show_default=True, help="Name to chat as.")
@click.option(
    "--provider",
    type=click.Choice(["openai", "ollama"], case_sensitive=False),
    default=None,
    help="Override llm_api_provider.",
)
@click.option("--url", default=None, help="Override llm_api_url.")
def console(player: str, provider: str | None, url: str | None) -> None:
    """Chat with the bot in an in-process world."""
    _preflight()
    settings = load_settings()
    overrides = {}
    if provider:
        overrides["llm_api_provider"] = provider.lower()
    if url:
        overrides["llm_api_url"] = url
    if overrides:
        settings = settings.model_copy(update=overrides)
    setup_logging(settings)
    click.echo(f"Chatting as {player}. Ctrl-D or Ctrl-C to quit.", err=True)
    run_console(settings, player)


@cli.command()
def tools() -> None:
    """Print the tool catalog the planner sees."""
    toolset = WorldToolSet(InProcessWorld())
    click.echo(_dump(toolset.registry.catalog()))


@cli.command("commands")
def list_commands() -> None:
    """Print the fast-path chat commands in match order."""
    load_all_commands()
    ordered = sorted(all_commands().values(), key=lambda c: (c.priority, c.name))
    click.echo(_dump([_command_entry(c) for c in ordered]))


def _command_entry(cmd: ChatCommand) -> dict:
    triggers = list(cmd.literals)
    if cmd.prefix is not None:
        triggers.append(f"{cmd.prefix} <name>")
    return {"name": cmd.name, "triggers": triggers, "description": cmd.description}


@cli.command("config")
def show_config() -> None:
    """Print the effective settings with secrets redacted."""
    click.echo(_dump(redact_settings(load_settings())))


def main() -> None:  # pragma: no cover
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
