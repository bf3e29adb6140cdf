"""CLI commands for replybot."""

import asyncio
import signal
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from replybot import __version__, __logo__

app = typer.Typer(
    name="replybot",
    help=f"{__logo__} replybot - human-paced auto replies for chat channels",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} replybot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """replybot - human-paced auto replies for chat channels."""
    pass


def _load_or_exit(config_file: Path | None):
    from replybot.auto_reply.errors import ConfigError
    from replybot.config.loader import load_config

    try:
        return load_config(config_file)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


# ============================================================================
# Onboard
# ============================================================================


@app.command()
def onboard(
    config_file: Path = typer.Option(None, "--config", "-c", help="Config file to write"),
):
    """Write a default configuration file."""
    from replybot.config.loader import get_config_path, save_config
    from replybot.config.schema import Config

    path = config_file or get_config_path()
    if path.exists():
        console.print(f"[yellow]Config already exists at {path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config(), path)
    console.print(f"[green]✓[/green] Created config at {path}")
    console.print("\nNext steps:")
    console.print("  1. Set [cyan]discord.token[/cyan], [cyan]discord.channel_id[/cyan] and [cyan]generation.api_key[/cyan]")
    console.print("     (or DISCORD_TOKEN, TARGET_CHANNEL_ID and GOOGLE_API_KEY in .env)")
    console.print("  2. Start: [cyan]replybot run[/cyan]")


# ============================================================================
# Run
# ============================================================================


@app.command()
def run(
    channel: str = typer.Option(None, "--channel", help="Override the target channel ID"),
    config_file: Path = typer.Option(None, "--config", "-c", help="Config file to read"),
    log_file: Path = typer.Option(None, "--log-file", help="Activity log path"),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """Start replying in the configured channel."""
    from loguru import logger

    from replybot.auto_reply.dispatch import AutoReplyLoop, DispatchConfig
    from replybot.auto_reply.errors import StartupError
    from replybot.auto_reply.queue import RequestScheduler, SchedulerConfig
    from replybot.auto_reply.retry import RetryConfig
    from replybot.auto_reply.selector import CandidateSelector
    from replybot.channels.base import ScheduledChannel
    from replybot.channels.discord import DiscordChannel
    from replybot.memory.store import ChannelMemory
    from replybot.providers.litellm_provider import LiteLLMProvider
    from replybot.utils.logging import setup_logging

    config = _load_or_exit(config_file)
    if channel:
        config.discord.channel_id = channel

    missing = config.missing_required()
    if missing:
        for name in missing:
            console.print(f"[red]Error: {name} is not configured.[/red]")
        console.print("Set them in ~/.replybot/config.json or your .env file.")
        raise typer.Exit(1)

    activity_log = log_file or config.log_path
    setup_logging(activity_log, verbose=verbose)

    platform = DiscordChannel(config.discord)
    scheduler = RequestScheduler(
        platform.execute,
        SchedulerConfig(
            min_interval_seconds=config.scheduler.min_interval_seconds,
            retry=RetryConfig(
                max_retries=config.scheduler.max_retries,
                jitter_seconds=config.scheduler.jitter_seconds,
                backoff_cap_seconds=config.scheduler.backoff_cap_seconds,
                retry_step_seconds=config.scheduler.retry_step_seconds,
            ),
        ),
    )
    generator = LiteLLMProvider(
        api_key=config.generation.api_key,
        api_base=config.generation.api_base,
        default_model=config.generation.model,
        temperature=config.generation.temperature,
        top_p=config.generation.top_p,
        max_tokens=config.generation.max_tokens,
        candidate_count=config.generation.candidate_count,
    )
    memory = ChannelMemory(max_turns=config.reply.memory_max_turns)
    timing = config.timing
    bot = AutoReplyLoop(
        channel=ScheduledChannel(scheduler),
        generator=generator,
        selector=CandidateSelector(memory),
        config=DispatchConfig(
            channel_id=config.discord.channel_id,
            poll_delay_min=timing.poll_delay_min,
            poll_delay_max=timing.poll_delay_max,
            read_delay=timing.read_delay,
            human_delay_min=timing.human_delay_min,
            human_delay_max=timing.human_delay_max,
            typing_cps_min=timing.typing_cps_min,
            typing_cps_max=timing.typing_cps_max,
            typing_min=timing.typing_min,
            typing_max=timing.typing_max,
            fetch_limit=config.reply.fetch_limit,
            banned_words=config.reply.banned_words,
        ),
        memory=memory,
    )

    console.print(f"{__logo__} Starting replybot on channel {config.discord.channel_id}...")
    console.print(f"[dim]Activity will be logged to {activity_log}[/dim]")

    async def _run():
        loop = asyncio.get_running_loop()
        main_task = asyncio.current_task()

        def _on_signal():
            if bot.is_running:
                logger.info("Caught interrupt signal. Stopping bot gracefully...")
                bot.stop()
            elif main_task is not None:
                main_task.cancel()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, _on_signal)
            except (NotImplementedError, RuntimeError):
                pass

        try:
            await bot.run()
        finally:
            await scheduler.close()
            await platform.close()

    try:
        asyncio.run(_run())
    except StartupError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\nShutting down...")

    console.print("Bot stopped")


# ============================================================================
# Status
# ============================================================================


@app.command()
def status(
    config_file: Path = typer.Option(None, "--config", "-c", help="Config file to read"),
):
    """Show configuration status."""
    config = _load_or_exit(config_file)
    missing = set(config.missing_required())

    def mark(name: str) -> str:
        return "[red]missing[/red]" if name in missing else "[green]✓[/green]"

    table = Table(title=f"{__logo__} replybot status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Discord token", mark("discord.token"))
    table.add_row("Channel", config.discord.channel_id or mark("discord.channel_id"))
    table.add_row("Generation API key", mark("generation.api_key"))
    table.add_row("Model", config.generation.model)
    table.add_row("Min request interval", f"{config.scheduler.min_interval_seconds}s")
    table.add_row("Max retries", str(config.scheduler.max_retries))
    table.add_row(
        "Poll delay",
        f"{config.timing.poll_delay_min:g}-{config.timing.poll_delay_max:g}s",
    )
    table.add_row("Banned words", str(len(config.reply.banned_words)))
    table.add_row("Activity log", str(config.log_path))

    console.print(table)
    if missing:
        raise typer.Exit(1)
