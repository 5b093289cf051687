"""Whale Tracker - Unified CLI.

Usage:
    python -m whale_tracker --help
    python -m whale_tracker watch BTCUSDT --alert 50000:above
    python -m whale_tracker analyze ETHUSDT
    python -m whale_tracker flows BTCUSDT
"""

from __future__ import annotations

import click

from ..core.utils import setup_logging


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    help="Set logging level.",
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default="console",
    help="Set logging format.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a JSON config file.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str, log_format: str, config_path: str | None) -> None:
    """Whale Tracker - Crypto price, signal and exchange flow monitoring.

    Watches prices for user-defined alerts, scores technical signals and
    flags whale-sized exchange deposits and withdrawals.

    \b
    Examples:
      python -m whale_tracker watch BTCUSDT ETHUSDT
      python -m whale_tracker watch BTCUSDT --alert 50000:above --alert 45000:below
      python -m whale_tracker analyze BTCUSDT --output json
      python -m whale_tracker flows BTCUSDT
    """
    ctx.ensure_object(dict)
    ctx.obj["log_level"] = log_level
    ctx.obj["log_format"] = log_format
    ctx.obj["config_path"] = config_path
    setup_logging(level=log_level, log_format=log_format)


# Import and register commands
from .commands import analyze, flows, watch

cli.add_command(watch.watch)
cli.add_command(analyze.analyze)
cli.add_command(flows.flows)


if __name__ == "__main__":
    cli()
