"""Whale Tracker - crypto price alerts, technical signals and exchange flow monitoring."""

from .tracker import WhaleTracker

__version__ = "0.1.0"

__all__ = ["WhaleTracker", "__version__"]
