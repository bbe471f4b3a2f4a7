from __future__ import annotations

from dataclasses import dataclass

import typer

from mrel.core.config import Config, load_config_or_default
from mrel.core.errors import ErrorCode
from mrel.core.result import Err
from mrel.core.workspace import Workspace, detect_workspace
from mrel.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    workspace: Workspace
    config: Config
    console: ConsoleProtocol


def build_context(*, console: ConsoleProtocol | None = None) -> CLIContext:
    workspace_result = detect_workspace()
    if isinstance(workspace_result, Err):
        typer.echo(f"error: {workspace_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    workspace = workspace_result.value
    config_result = load_config_or_default(workspace.root)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    return CLIContext(
        workspace=workspace,
        config=config_result.value,
        console=console or RichConsole(),
    )
