"""CLI entry point for the release workflow."""

import asyncio
import sys
from contextlib import AsyncExitStack
from pathlib import Path

import click
import structlog

from release_sapiens.config.settings import ReleaseSettings
from release_sapiens.engine.notifier import ReleaseNotifier
from release_sapiens.engine.release import ReleaseEvent, describe
from release_sapiens.exceptions import ConfigurationError, ReleaseSapiensError
from release_sapiens.models.domain import ChatMessage, ReleaseAnswer
from release_sapiens.providers.factory import create_message_provider, create_pull_request_provider
from release_sapiens.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)


@click.group()
@click.option(
    "--config",
    default="release_sapiens/config/release_config.yaml",
    help="Path to configuration file",
)
@click.option("--log-level", default="INFO", help="Logging level")
@click.pass_context
def cli(ctx: click.Context, config: str, log_level: str) -> None:
    """release-sapiens: Bitbucket release automation driven by chat."""
    configure_logging(log_level)

    # describe only prints static data
    if ctx.invoked_subcommand == "describe":
        ctx.obj = {"settings": None}
        return

    config_path = Path(config)
    if not config_path.exists():
        click.echo(f"Error: Configuration file not found: {config}", err=True)
        sys.exit(1)

    try:
        settings = ReleaseSettings.from_yaml(str(config_path))
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("config_error", exc_info=True)
        sys.exit(1)

    ctx.obj = {"settings": settings}


@cli.command()
@click.option("--text", required=True, help="Chat message containing pull-request links")
@click.option("--channel", default="cli", help="Channel the message came from")
@click.option("--user", default="", help="Chat user id of the requester")
@click.pass_context
def release(ctx: click.Context, text: str, channel: str, user: str) -> None:
    """Release the pull-requests linked in a message."""
    try:
        settings = ctx.obj["settings"]
        answer = asyncio.run(_release(settings, ChatMessage(channel=channel, text=text, user=user)))
    except ReleaseSapiensError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug("release_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)

    click.echo(answer.text)
    if not answer.succeeded:
        click.echo(f"\nError: {answer.error}", err=True)
        sys.exit(1)


@cli.command(name="describe")
def describe_command() -> None:
    """Show how the release event is registered in a chat host."""
    description = describe()
    click.echo(f"Event: {description.name} ({description.version})")
    click.echo(f"Trigger: {description.trigger_pattern}")
    click.echo(f"Answer: {description.trigger_answer}")
    click.echo(f"\n{description.help_text}")


async def _release(settings: ReleaseSettings, message: ChatMessage) -> ReleaseAnswer:
    """Run one release with providers that live for this run only."""
    async with AsyncExitStack() as stack:
        bitbucket = await stack.enter_async_context(create_pull_request_provider(settings))

        slack = create_message_provider(settings)
        if slack is not None:
            await stack.enter_async_context(slack)

        event = ReleaseEvent(bitbucket, ReleaseNotifier(slack), settings)
        return await event.execute(message)


if __name__ == "__main__":
    cli()
