"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer

from mrel.core.errors import ErrorCode
from mrel.output.console import ConsoleProtocol, Style
from mrel.release.errors import ReleaseError


def release_error_code(error: ReleaseError) -> ErrorCode:
    if error.run_scoped:
        return ErrorCode.CONFIG_ERROR
    if error.kind == "invalid_input":
        return ErrorCode.USER_ERROR
    return ErrorCode.RELEASE_ERROR


def exit_on_release_error(error: ReleaseError, console: ConsoleProtocol) -> NoReturn:
    """Print ``error`` (and its hint) and exit with the matching code."""
    console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)
    raise typer.Exit(code=int(release_error_code(error)))


def exit_with_code(code: int) -> NoReturn:
    raise typer.Exit(code=code)
