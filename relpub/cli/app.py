from __future__ import annotations

import os
from pathlib import Path

import typer

from relpub import __version__
from relpub.cli.commands.hash_cmd import describe, hash_files
from relpub.cli.commands.release_cmd import publish, verify
from relpub.cli.context import CONFIG_ENV_VAR, ROOT_ENV_VAR
from relpub.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(publish)
app.command()(verify)
app.command("hash")(hash_files)
app.command()(describe)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Config file (default: relpub.toml in the project root)",
    ),
    root: Path | None = typer.Option(
        None,
        "--root",
        help="Project root (default: current directory)",
    ),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if root is not None:
        resolved = root.expanduser().resolve()
        if not resolved.is_dir():
            typer.echo(f"error: --root '{resolved}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.ABORTED))
        os.environ[ROOT_ENV_VAR] = str(resolved)

    if config is not None:
        os.environ[CONFIG_ENV_VAR] = str(config.expanduser().resolve())


def main() -> None:
    app()
