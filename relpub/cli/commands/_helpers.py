"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from relpub.core.errors import ErrorCode
from relpub.output.console import Style

if TYPE_CHECKING:
    from relpub.cli.context import CLIContext


def fail(ctx: CLIContext, error: object, error_code: ErrorCode = ErrorCode.ABORTED) -> NoReturn:
    """Print an error (and its hint, if any) and exit.

    Accepts a plain string or an error object with 'message' and optional
    'hint' attributes.
    """
    message: str = getattr(error, "message", str(error))
    hint: str | None = getattr(error, "hint", None)
    ctx.console.error(message)
    if hint:
        ctx.console.print(f"hint: {hint}", Style.DIM)
    raise typer.Exit(code=int(error_code))
