"""Shared helpers for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import typer

from playpub.core.result import Err, Result
from playpub.output.errors import print_publish_error, publish_error_exit_code
from playpub.services.publish.errors import PublishError

if TYPE_CHECKING:
    from playpub.cli.context import CLIContext


def exit_with_error(error: PublishError, ctx: CLIContext) -> NoReturn:
    print_publish_error(error, ctx.console)
    raise typer.Exit(code=publish_error_exit_code(error))


def unwrap_or_exit[T](result: Result[T, PublishError], ctx: CLIContext) -> T:
    """Return the value of an Ok result; report an Err and exit.

    Replaces the common pattern:
        match result:
            case Err(error):
                print_publish_error(error, ctx.console)
                raise typer.Exit(code=publish_error_exit_code(error))
            case Ok(value):
                ...
    """
    if isinstance(result, Err):
        exit_with_error(result.error, ctx)
    return result.value


def resolve_dir(path: Path | None, ctx: CLIContext) -> Path:
    """Directory option relative to the working directory (default: cwd)."""
    if path is None:
        return ctx.root
    p = path.expanduser()
    if not p.is_absolute():
        p = ctx.root / p
    return p
