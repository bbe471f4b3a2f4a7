from __future__ import annotations

import os
from pathlib import Path

import typer

from mrel import __version__
from mrel.cli.commands.graph_cmd import graph
from mrel.cli.commands.release_cmd import release
from mrel.core.errors import ErrorCode
from mrel.core.workspace import WORKSPACE_ENV_VAR, is_workspace_root


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


app.command()(release)
app.command()(graph)


@app.callback(invoke_without_command=True)
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    workspace: Path | None = typer.Option(
        None,
        "--workspace",
        help="Workspace root (overrides auto detection)",
    ),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if workspace is not None:
        try:
            root = workspace.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --workspace: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir() or not is_workspace_root(root):
            typer.echo(
                f"error: --workspace '{root}' is not a valid workspace (no package.json with `workspaces`)",
                err=True,
            )
            raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

        os.environ[WORKSPACE_ENV_VAR] = str(root)


def main() -> None:
    app()
