"""CLI utility functions.

Provides:
- Async execution helpers for Click commands
- Output formatting utilities
- Alert option parsing
"""

from __future__ import annotations

import asyncio
import json
import sys
from functools import wraps
from typing import Any, Callable, TypeVar

import click

from ..alerts import AlertType
from ..core.utils import get_logger, to_decimal
from ..core.errors import ValidationError

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def async_command(f: F) -> F:
    """Decorator to run async functions in Click commands.

    Usage:
        @cli.command()
        @async_command
        async def my_command():
            await some_async_operation()
    """
    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(f(*args, **kwargs))
    return wrapper  # type: ignore


def parse_alert(value: str) -> tuple[str, str]:
    """Parse 'PRICE[:TYPE]' into (price, type).

    Raises:
        click.BadParameter: On a malformed price or unknown type.
    """
    price, _, kind = value.partition(":")
    kind = (kind or AlertType.ABOVE.value).lower()

    try:
        AlertType(kind)
    except ValueError:
        choices = ", ".join(t.value for t in AlertType)
        raise click.BadParameter(f"alert type must be one of: {choices}")

    try:
        to_decimal(price)
    except ValidationError:
        raise click.BadParameter(f"invalid alert price: {price!r}")

    return price, kind


def print_header(title: str, width: int = 70) -> None:
    """Print a formatted header."""
    click.echo("=" * width)
    click.echo(f"  {title}")
    click.echo("=" * width)


def print_subheader(title: str, width: int = 70) -> None:
    """Print a formatted subheader."""
    click.echo()
    click.echo("-" * width)
    click.echo(f"  {title}")
    click.echo("-" * width)


def print_table_row(label: str, value: Any, width: int = 24) -> None:
    """Print a formatted table row."""
    click.echo(f"  {label:<{width}} {value}")


def handle_error(error: Exception, verbose: bool = False) -> None:
    """Handle and display errors consistently."""
    if verbose:
        logger.exception("Command failed", error=str(error))
    click.echo(f"\nError: {error}", err=True)
    sys.exit(1)


def output_json(data: Any) -> None:
    """Output data as JSON."""
    click.echo(json.dumps(data, indent=2, default=str))
