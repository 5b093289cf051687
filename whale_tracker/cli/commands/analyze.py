"""Analyze command - one-off technical analysis."""

from __future__ import annotations

import click

from ..utils import async_command, output_json, print_header, print_subheader, print_table_row
from ...core.config import Credentials, load_config
from ...core.utils import format_percentage, format_price
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
async def analyze(ctx: click.Context, symbol: str, output: str) -> None:
    """Score RSI, MACD and volume for SYMBOL into a trading signal.

    \b
    Examples:
      python -m whale_tracker analyze BTCUSDT
      python -m whale_tracker analyze ETHUSDT --output json
    """
    config_path = ctx.obj.get("config_path") if ctx.obj else None
    tracker = WhaleTracker(load_config(config_path), Credentials.from_env())
    await tracker.initialize()
    try:
        analysis = await tracker.analyze_coin(symbol)
    finally:
        await tracker.shutdown()

    if output == "json":
        output_json(analysis.to_dict())
        return

    print_header(f"TECHNICAL ANALYSIS: {analysis.symbol}")
    if analysis.is_fallback:
        click.echo("  (market data unavailable, showing fallback values)")

    print_table_row("Price", f"${format_price(analysis.current_price)}")
    print_table_row("24h Change", format_percentage(analysis.change_24h))
    print_table_row("24h Volume", f"${analysis.volume_24h:,.2f}")

    print_subheader("Indicators")
    print_table_row("RSI(14)", f"{analysis.rsi:.2f}" if analysis.rsi is not None else "n/a")
    if analysis.macd is not None:
        print_table_row("MACD histogram", f"{analysis.macd.histogram:.4f}")
    if analysis.bollinger is not None:
        bands = analysis.bollinger
        print_table_row("Bollinger", f"{bands.lower:.2f} / {bands.middle:.2f} / {bands.upper:.2f}")
    print_table_row("Volume change", format_percentage(analysis.volume_change))
    if analysis.support is not None:
        print_table_row("Support", f"${format_price(analysis.support)}")
    if analysis.resistance is not None:
        print_table_row("Resistance", f"${format_price(analysis.resistance)}")

    print_subheader("Signal")
    print_table_row(analysis.signal.value, f"strength {analysis.signal_strength:.0%}")
