"""CLI command modules.

- watch: Live monitoring with alerts
- analyze: One-off technical analysis
- flows: Exchange flow snapshot
"""

from . import analyze, flows, watch

__all__ = ["analyze", "flows", "watch"]
