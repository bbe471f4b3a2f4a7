from __future__ import annotations

import asyncio

import typer

from mrel.cli.commands._helpers import exit_on_release_error, exit_with_code
from mrel.cli.context import build_context
from mrel.core.config import Config
from mrel.core.errors import ErrorCode
from mrel.core.log import configure_logging
from mrel.core.result import Err
from mrel.output.console import ConsoleProtocol, Style
from mrel.release.errors import ReleaseError
from mrel.release.runner import RunReport, run_release


def _split_csv(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [item.strip() for item in value.split(",") if item.strip()]


def _flag(value: bool) -> bool | None:
    # An unset switch must not override mrel.toml.
    return True if value else None


def apply_overrides(
    config: Config,
    *,
    dry_run: bool = False,
    sequential: bool = False,
    first_parent: bool = False,
    push: bool = False,
    ignore_private_packages: bool = False,
    ignore_packages: str | None = None,
    prerelease: str | None = None,
    branch: str | None = None,
    deps_bump: str | None = None,
    deps_prefix: str | None = None,
    deps_release: str | None = None,
) -> Config | ReleaseError:
    try:
        return config.with_overrides(
            deps={"bump": deps_bump, "prefix": deps_prefix, "release": deps_release},
            dry_run=_flag(dry_run),
            sequential=_flag(sequential),
            first_parent=_flag(first_parent),
            push=_flag(push),
            ignore_private_packages=_flag(ignore_private_packages),
            ignore_packages=_split_csv(ignore_packages),
            prerelease=prerelease or None,
            branch=branch or None,
        )
    except ValueError as e:
        return ReleaseError(kind="config_invalid", message=str(e))


def print_report(report: RunReport, console: ConsoleProtocol) -> None:
    console.header("Dry run" if report.dry_run else "Summary")
    for outcome in report.outcomes:
        if outcome.error is not None:
            console.error(f"{outcome.name}: {outcome.error.pretty()}")
        elif outcome.next_version is not None:
            verb = "would release" if report.dry_run else "released"
            console.success(f"{outcome.name}: {verb} {outcome.next_version}")
        else:
            current = outcome.last_version or "unreleased"
            console.print(f"  {outcome.name}: no release ({current})", Style.DIM)


def release(
    dry_run: bool = typer.Option(False, "--dry-run", help="Compute versions and notes; no writes, no tags."),
    sequential: bool = typer.Option(False, "--sequential", help="Start units one at a time."),
    first_parent: bool = typer.Option(
        False, "--first-parent", help="Only consider first-parent commits of the branch."
    ),
    deps_bump: str | None = typer.Option(
        None, "--deps-bump", help="Constraint update strategy: override | satisfy | inherit."
    ),
    deps_prefix: str | None = typer.Option(
        None, "--deps-prefix", help="Prefix for overridden constraints: '^' | '~' | ''."
    ),
    deps_release: str | None = typer.Option(
        None, "--deps-release", help="Release of dependents: patch | minor | major | inherit."
    ),
    ignore_packages: str | None = typer.Option(
        None, "--ignore-packages", help="Comma-separated globs of packages to skip."
    ),
    ignore_private_packages: bool = typer.Option(
        False, "--ignore-private-packages", help="Skip packages marked private."
    ),
    prerelease: str | None = typer.Option(None, "--prerelease", help="Prerelease channel, e.g. beta."),
    branch: str | None = typer.Option(None, "--branch", help="Release branch (default: main)."),
    push: bool = typer.Option(False, "--push", help="Push release commits and tags."),
    debug: bool = typer.Option(False, "--debug", help="Verbose diagnostic logging."),
) -> None:
    """Release every changed workspace package."""
    configure_logging(debug=debug)
    ctx = build_context()

    config = apply_overrides(
        ctx.config,
        dry_run=dry_run,
        sequential=sequential,
        first_parent=first_parent,
        push=push,
        ignore_private_packages=ignore_private_packages,
        ignore_packages=ignore_packages,
        prerelease=prerelease,
        branch=branch,
        deps_bump=deps_bump,
        deps_prefix=deps_prefix,
        deps_release=deps_release,
    )
    if isinstance(config, ReleaseError):
        exit_on_release_error(config, ctx.console)

    result = asyncio.run(run_release(ctx.workspace.root, config, ctx.console))
    if isinstance(result, Err):
        exit_on_release_error(result.error, ctx.console)

    report = result.value
    print_report(report, ctx.console)
    if not report.ok:
        exit_with_code(int(ErrorCode.RELEASE_ERROR))
