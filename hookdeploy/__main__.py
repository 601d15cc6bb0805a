"""Entry point: python -m hookdeploy."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hookdeploy import __version__
from hookdeploy.config import ServerConfig
from hookdeploy.errors import ConfigError, ListenerError
from hookdeploy.logging_config import setup_logging, shutdown_logging
from hookdeploy.webhook.deployer import Deployer
from hookdeploy.webhook.server import WebhookServer

logger = logging.getLogger(__name__)

_console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Help & banner
# ---------------------------------------------------------------------------


def _print_usage() -> None:
    """Print usage and the environment variables the server reads."""
    _console.print()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold green", min_width=24)
    table.add_column()
    table.add_row("hookdeploy", "Start the webhook server")
    table.add_row("-v, --verbose", "Verbose logging output")
    table.add_row("-h, --help", "Show this message")
    table.add_row("", "")
    table.add_row("WEBHOOK_SECRET", "Shared HMAC secret (required)")
    table.add_row("PORT", "Listener port (default 9000)")
    table.add_row("HOST", "Bind address (default 0.0.0.0)")
    table.add_row("DEPLOY_SCRIPT", "Script run on push to main")
    table.add_row("DEPLOY_TIMEOUT", "Seconds before a deploy is killed (default: none)")
    table.add_row("MAX_BODY_BYTES", "Largest accepted request body")
    table.add_row("LOG_LEVEL, LOG_DIR", "Log level and optional log file directory")
    _console.print(
        Panel(table, title=f"[bold]hookdeploy {__version__}[/bold]", border_style="blue"),
    )
    _console.print()


def _print_banner(config: ServerConfig) -> None:
    """Show what the server is about to do.  Never prints the secret."""
    timeout = f"{config.deploy_timeout:.0f}s" if config.deploy_timeout else "none"
    lines = [
        f"Listening:  [bold]{config.host}:{config.port}[/bold]",
        f"Script:     {config.deploy_script}",
        f"Timeout:    {timeout}",
    ]
    if not config.deploy_script.is_file():
        lines.append("[bold yellow]Deploy script not found; deploys will fail.[/bold yellow]")
    _console.print(
        Panel(
            "\n".join(lines),
            title=f"[bold]hookdeploy {__version__}[/bold]",
            border_style="cyan",
            padding=(0, 2),
        ),
    )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


async def serve(config: ServerConfig) -> None:
    """Run the webhook server until SIGINT/SIGTERM."""
    deployer = Deployer(config.deploy_script, timeout=config.deploy_timeout)
    server = WebhookServer(config, deployer)
    try:
        await server.start()
    except OSError as exc:
        msg = f"cannot listen on {config.host}:{config.port}: {exc}"
        raise ListenerError(msg) from exc

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    try:
        await stop.wait()
        logger.info("Shutting down...")
    finally:
        await server.stop()


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = sys.argv[1:] if argv is None else argv
    verbose = "--verbose" in args or "-v" in args

    if "--help" in args or "-h" in args:
        _print_usage()
        return

    try:
        config = ServerConfig.from_env()
    except ConfigError as exc:
        setup_logging(verbose=verbose)
        logger.critical("%s", exc)
        sys.exit(1)

    setup_logging(level=config.log_level_number, verbose=verbose, log_dir=config.log_dir)
    _print_banner(config)

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except ListenerError as exc:
        logger.critical("Failed to start: %s", exc)
        sys.exit(1)
    finally:
        shutdown_logging()


if __name__ == "__main__":
    main()
