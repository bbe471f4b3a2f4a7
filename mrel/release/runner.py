"""Run orchestration: workspace -> graph -> one task per unit -> report."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

import structlog

from mrel.core.config import Config
from mrel.core.result import Err, Ok, Result
from mrel.git.repository import Repository
from mrel.output.console import ConsoleProtocol
from mrel.release.driver import PipelineDriver, RunContext
from mrel.release.errors import ReleaseError
from mrel.release.graph import DependencyGraph, build_graph
from mrel.release.history import GitHistory
from mrel.release.plugins import DefaultPlugins, GitTagger, HistoryProvider, ReleasePlugins, Tagger
from mrel.release.propagation import SeverityPropagator
from mrel.release.synchronizer import Synchronizer
from mrel.release.unit import Release, UnitState
from mrel.release.workspace import load_workspace

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class UnitOutcome:
    name: str
    state: UnitState
    last_version: str | None
    next_version: str | None
    error: ReleaseError | None = None


@dataclass(frozen=True, slots=True)
class RunReport:
    outcomes: tuple[UnitOutcome, ...]
    releases: tuple[Release, ...]
    dry_run: bool = False
    rounds: int = 0

    @property
    def released(self) -> list[UnitOutcome]:
        """Units that went through a release (or would have, in dry-run)."""
        return [o for o in self.outcomes if o.error is None and o.next_version is not None]

    @property
    def failed(self) -> list[UnitOutcome]:
        return [o for o in self.outcomes if o.error is not None]

    @property
    def skipped(self) -> list[UnitOutcome]:
        return [o for o in self.outcomes if o.error is None and o.next_version is None]

    @property
    def ok(self) -> bool:
        return not self.failed


async def release_units(
    graph: DependencyGraph,
    config: Config,
    *,
    plugins: ReleasePlugins,
    history: HistoryProvider,
    tagger: Tagger,
    console: ConsoleProtocol,
) -> RunReport:
    """Run every unit of ``graph`` concurrently on the current event loop."""
    units = graph.units
    sync = Synchronizer(units)
    ctx = RunContext(
        sync=sync,
        propagator=SeverityPropagator(sync, units, channel=config.release.prerelease),
        plugins=plugins,
        history=history,
        tagger=tagger,
        options=config.release,
        console=console,
    )
    log.debug("run_started", units=len(units), depth=graph.depth, dry_run=config.release.dry_run)
    await asyncio.gather(*(PipelineDriver(ctx, unit).run() for unit in units))

    outcomes = tuple(
        UnitOutcome(
            name=u.name,
            state=u.state,
            last_version=str(u.last_version) if u.last_version else None,
            next_version=str(u.next_version) if u.next_version else None,
            error=u.error,
        )
        for u in units
    )
    releases = tuple(ctx.releases[name] for name in sorted(ctx.releases))
    return RunReport(
        outcomes=outcomes,
        releases=releases,
        dry_run=config.release.dry_run,
        rounds=ctx.propagator.rounds,
    )


def load_graph(root: Path, config: Config) -> Result[DependencyGraph, ReleaseError]:
    manifests = load_workspace(root, config.release.ignore_packages)
    if isinstance(manifests, Err):
        return manifests
    return build_graph(manifests.value, config)


async def run_release(root: Path, config: Config, console: ConsoleProtocol) -> Result[RunReport, ReleaseError]:
    """Release the workspace at ``root`` with the default git-backed collaborators.

    Run-scoped problems (invalid manifests, no units, cycles, no git checkout)
    come back as Err before any unit task starts.
    """
    graph = load_graph(root, config)
    if isinstance(graph, Err):
        return graph

    repo = Repository(root)
    toplevel = await repo.toplevel()
    if isinstance(toplevel, Err):
        return Err(
            ReleaseError(
                kind="config_invalid",
                message=f"not a git repository: {root}",
                hint=toplevel.error.message,
            )
        )

    report = await release_units(
        graph.value,
        config,
        plugins=DefaultPlugins(console, repo, config.release),
        history=GitHistory(repo, config.release),
        tagger=GitTagger(repo),
        console=console,
    )
    return Ok(report)
