"""Watch command - live monitoring with price alerts.

Starts a live monitoring session that:
- Polls prices, technical signals and exchange flows per symbol
- Evaluates price alerts on every sample
- Sends notifications via configured channels
"""

from __future__ import annotations

import asyncio
import signal
import sys

import click

from ..utils import parse_alert, print_header, print_table_row
from ...core.config import Credentials, load_config
from ...core.utils import get_logger
from ...tracker import WhaleTracker

logger = get_logger(__name__)


async def run_watch(
    symbols: tuple[str, ...],
    alerts: list[tuple[str, str]],
    interval: float | None,
    technical: bool,
    flow: bool,
    console: bool,
    repeat: bool,
    config_path: str | None,
) -> None:
    """Run the live monitoring loop until interrupted.

    Args:
        symbols: Trading pairs to watch.
        alerts: (price, type) pairs for the watched symbol.
        interval: Poll interval override in seconds.
        technical: Run technical analysis.
        flow: Run exchange flow monitoring.
        console: Print notifications to stdout.
        repeat: Re-arm alerts after they fire.
        config_path: JSON config file.
    """
    tracker = WhaleTracker(load_config(config_path), Credentials.from_env(), console=console)
    await tracker.initialize()

    for symbol in symbols:
        state = await tracker.start_monitoring(
            symbol, technical=technical, flow=flow, interval_seconds=interval
        )
        running = ", ".join(name for name, on in state.items() if on) or "nothing"
        print_table_row(symbol.upper(), running)

    for price, kind in alerts:
        alert = tracker.add_alert(symbols[0], price, kind, repeat=repeat)
        print_table_row("Alert", f"{alert.symbol} {alert.type.value} {alert.price} ({alert.id[:8]})")

    # Handle shutdown
    shutdown_event = asyncio.Event()

    def handle_shutdown(sig, frame):
        logger.info(f"Received signal {sig}, shutting down...")
        shutdown_event.set()

    # Register signal handlers (Unix only)
    if sys.platform != "win32":
        signal.signal(signal.SIGINT, handle_shutdown)
        signal.signal(signal.SIGTERM, handle_shutdown)

    click.echo("Press Ctrl+C to stop.")
    click.echo("-" * 50)

    router = asyncio.create_task(tracker.run())
    try:
        if sys.platform == "win32":
            while not shutdown_event.is_set():
                await asyncio.sleep(1)
        else:
            await shutdown_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await tracker.shutdown()
        await router
        click.echo("Shutdown complete.")


@click.command()
@click.argument("symbols", nargs=-1, required=True)
@click.option(
    "--alert",
    "alert_specs",
    multiple=True,
    help="Price alert as PRICE[:above|below|cross]. Needs exactly one SYMBOL.",
)
@click.option(
    "--repeat/--once",
    default=False,
    help="Re-arm alerts after they fire (cooldown still applies).",
)
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Poll interval in seconds for every monitor (default: per-monitor config).",
)
@click.option("--technical/--no-technical", default=True, help="Run technical analysis.")
@click.option("--flow/--no-flow", default=True, help="Run exchange flow monitoring.")
@click.option("--console/--no-console", default=True, help="Print notifications to stdout.")
@click.pass_context
def watch(
    ctx: click.Context,
    symbols: tuple[str, ...],
    alert_specs: tuple[str, ...],
    repeat: bool,
    interval: float | None,
    technical: bool,
    flow: bool,
    console: bool,
) -> None:
    """Watch SYMBOLS live and fire price alerts.

    \b
    Examples:
      python -m whale_tracker watch BTCUSDT ETHUSDT
      python -m whale_tracker watch BTCUSDT --alert 50000:above --alert 45000:below
      python -m whale_tracker watch ETHUSDT --alert 3000:cross --repeat
    """
    alerts = [parse_alert(spec) for spec in alert_specs]
    if alerts and len(symbols) != 1:
        raise click.UsageError("--alert needs exactly one SYMBOL")

    print_header("WHALE TRACKER")
    asyncio.run(
        run_watch(
            symbols=symbols,
            alerts=alerts,
            interval=interval,
            technical=technical,
            flow=flow,
            console=console,
            repeat=repeat,
            config_path=ctx.obj.get("config_path") if ctx.obj else None,
        )
    )
