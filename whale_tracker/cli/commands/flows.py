"""Flows command - exchange inflow/outflow snapshot."""

from __future__ import annotations

import click

from ..utils import (
    async_command,
    handle_error,
    output_json,
    print_header,
    print_subheader,
    print_table_row,
)
from ...core.config import Credentials, load_config
from ...core.errors import ConfigurationError
from ...tracker import WhaleTracker


@click.command()
@click.argument("symbol")
@click.option(
    "--output",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)
@click.pass_context
@async_command
async def flows(ctx: click.Context, symbol: str, output: str) -> None:
    """Show exchange inflow, outflow and whale activity for SYMBOL.

    Requires CRYPTOQUANT_API_KEY.

    \b
    Examples:
      python -m whale_tracker flows BTCUSDT
      python -m whale_tracker flows ETH --output json
    """
    config_path = ctx.obj.get("config_path") if ctx.obj else None
    tracker = WhaleTracker(load_config(config_path), Credentials.from_env())
    await tracker.initialize()
    try:
        snapshot = await tracker.get_exchange_flows(symbol)
    except ConfigurationError as e:
        handle_error(e)
    finally:
        await tracker.shutdown()

    whales = tracker.flow_monitor.detect_whale_movements(snapshot)
    critical = tracker.flow_monitor.check_critical_flows(snapshot)

    if output == "json":
        output_json({
            **snapshot.to_dict(),
            "whales": [w.message for w in whales],
            "critical": [c.message for c in critical],
        })
        return

    print_header(f"EXCHANGE FLOWS: {snapshot.asset}")
    if snapshot.is_fallback:
        click.echo("  (flow data unavailable, showing fallback values)")

    for label, flow in (("Inflow", snapshot.inflow), ("Outflow", snapshot.outflow)):
        stats = flow.statistics
        print_subheader(label)
        print_table_row("Total", f"{stats.total_24h:,.2f} {snapshot.asset}")
        print_table_row("Whale volume", f"{stats.whale_volume:,.2f} {snapshot.asset}")
        print_table_row("Whale transactions", stats.whale_transactions)
        print_table_row("Largest", f"{stats.max_transaction:,.2f} {snapshot.asset}")

    print_subheader("Net")
    print_table_row("Net balance", f"{snapshot.net_balance:+,.2f} {snapshot.asset}")
    print_table_row("Market impact", snapshot.market_impact.value)

    for event in [*whales, *critical]:
        click.echo(f"  ! {event.message}")
