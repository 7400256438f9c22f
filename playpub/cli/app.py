from __future__ import annotations

import typer

from playpub import __version__
from playpub.cli.commands.move import move
from playpub.cli.commands.upload import upload

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Publish Android APKs to Google Play release tracks.",
)


# Commands
app.command()(upload)
app.command()(move)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    pass


def main() -> None:
    app()
