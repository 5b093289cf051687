"""Enable running as: python -m whale_tracker

Usage:
    python -m whale_tracker --help
    python -m whale_tracker watch BTCUSDT --alert 50000:above
"""

from whale_tracker.cli.main import cli

if __name__ == "__main__":
    cli()
