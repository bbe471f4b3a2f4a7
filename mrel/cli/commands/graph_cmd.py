from __future__ import annotations

import typer

from mrel.cli.commands._helpers import exit_on_release_error
from mrel.cli.context import build_context
from mrel.core.result import Err
from mrel.output.console import Style
from mrel.release.runner import load_graph


def graph(
    private: bool = typer.Option(True, "--private/--no-private", help="Include private packages."),
) -> None:
    """Show workspace packages and their local dependencies."""
    ctx = build_context()
    config = ctx.config
    if not private:
        config = config.with_overrides(ignore_private_packages=True)

    result = load_graph(ctx.workspace.root, config)
    if isinstance(result, Err):
        exit_on_release_error(result.error, ctx.console)

    g = result.value
    ctx.console.header(f"{len(g)} packages, depth {g.depth}")
    for unit in g.topological():
        marker = " (private)" if unit.private else ""
        ctx.console.print(f"{unit.name}{marker}", Style.BOLD)
        for dep in unit.depends_on:
            constraints = ", ".join(
                f"{scope}: {c}" for scope, c in unit.manifest.constraints_for(dep.name).items()
            )
            ctx.console.print(f"  -> {dep.name} ({constraints})", Style.DIM)
