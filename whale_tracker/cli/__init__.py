"""CLI package for Whale Tracker.

Provides a command-line interface for:
- Live monitoring with price alerts
- One-off technical analysis
- Exchange flow snapshots
"""

from .main import cli

__all__ = ["cli"]
