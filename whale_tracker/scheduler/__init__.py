"""Task scheduling for periodic operations.

This module provides:
- Async task scheduler using asyncio
- One cancellable periodic job per monitor and symbol
- Job health tracking and error handling
"""

from .scheduler import (
    Job,
    JobRun,
    JobStatus,
    Scheduler,
)

__all__ = [
    "Job",
    "JobRun",
    "JobStatus",
    "Scheduler",
]
