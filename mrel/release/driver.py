"""Per-unit pipeline.

Each unit task walks the same state machine. The handler registered for a
state runs that phase and returns the state to move to; the phase boundaries
are where the unit meets its siblings on the shared ``Synchronizer``:

    verifying        sequential mode only: "ready-for-release" baton
    analyzing        "analyzed" barrier, then severity propagation rounds
    severity_final   "next-release" barrier over releasing units
    notes_generated  (dry-run stops here)
    tagging          "tag-baton": manifest rewrite, prepare, tag
    prepared         publish
    published        "published" and "succeeded" barriers, then announce

Whatever happens, a unit leaves the run with its flags set and retired from
the synchronizer, so no sibling can block on it.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field

import structlog

from mrel.core.config import ReleaseOptions
from mrel.core.result import Err, Ok, Result
from mrel.output.console import ConsoleProtocol, ScopedConsole
from mrel.release.errors import ReleaseError
from mrel.release.manifest import load_manifest, rewrite_constraints
from mrel.release.notes import compose_notes
from mrel.release.plugins import HistoryProvider, ReleasePlugins, Tagger
from mrel.release.propagation import SeverityPropagator
from mrel.release.resolver import planned_version
from mrel.release.synchronizer import Synchronizer, UnitPredicate
from mrel.release.unit import Release, Unit, UnitState

log = structlog.get_logger()

READY_BATON = "ready-for-release"
TAG_BATON = "tag-baton"

StepHandler = Callable[[], Awaitable[Result[UnitState, ReleaseError]]]


def _no_releases() -> dict[str, Release]:
    return {}


@dataclass(slots=True)
class RunContext:
    """Everything the unit tasks of one run share."""

    sync: Synchronizer
    propagator: SeverityPropagator
    plugins: ReleasePlugins
    history: HistoryProvider
    tagger: Tagger
    options: ReleaseOptions
    console: ConsoleProtocol
    releases: dict[str, Release] = field(default_factory=_no_releases)


def _not_ready(u: Unit) -> bool:
    return not u.flags.ready


def _awaiting_tag(u: Unit) -> bool:
    return u.releasing and not u.flags.tagged


def _releasing(u: Unit) -> bool:
    return u.releasing


class PipelineDriver:
    def __init__(self, ctx: RunContext, unit: Unit) -> None:
        self.ctx = ctx
        self.unit = unit
        self._console = ScopedConsole(ctx.console, unit.name)
        self._log = log.bind(unit=unit.name)
        self._handlers: Mapping[UnitState, StepHandler] = {
            UnitState.VERIFYING: self._verify,
            UnitState.ANALYZING: self._analyze,
            UnitState.SEVERITY_FINAL: self._finalize_severity,
            UnitState.NOTES_GENERATED: self._generate_notes,
            UnitState.TAGGING: self._tag,
            UnitState.PREPARED: self._publish,
            UnitState.PUBLISHED: self._succeed,
        }

    async def run(self) -> Result[None, ReleaseError]:
        unit = self.unit
        unit.state = UnitState.VERIFYING
        try:
            while not unit.state.terminal:
                handler = self._handlers.get(unit.state)
                if handler is None:
                    outcome: Result[UnitState, ReleaseError] = Err(
                        ReleaseError(kind="invalid_input", message=f"no handler for state {unit.state}")
                    )
                else:
                    outcome = await self._guarded(handler)

                if isinstance(outcome, Err):
                    await self._fail(outcome.error)
                    return Err(outcome.error)

                self._log.debug("state_changed", src=str(unit.state), dst=str(outcome.value))
                unit.state = outcome.value
            return Ok(None)
        finally:
            if not unit.state.terminal:
                unit.mark_failed(ReleaseError(kind="collaborator_failed", message="release task was cancelled"))
            self._hand_over_batons()
            self.ctx.sync.retire(unit)

    async def _guarded(self, handler: StepHandler) -> Result[UnitState, ReleaseError]:
        try:
            return await handler()
        except Exception as e:
            self._log.exception("collaborator_raised", state=str(self.unit.state))
            return Err(ReleaseError(kind="collaborator_failed", message=f"{type(e).__name__}: {e}"))

    async def _fail(self, error: ReleaseError) -> None:
        unit = self.unit
        unit.mark_failed(error)
        self.ctx.releases.pop(unit.name, None)
        self._hand_over_batons()
        self.ctx.sync.refresh()
        self._log.warning("unit_failed", kind=error.kind, message=error.message)

        try:
            reported = await self.ctx.plugins.fail(unit, error)
        except Exception:
            self._log.exception("fail_hook_raised")
            return
        if isinstance(reported, Err):
            self._log.warning("fail_hook_failed", message=reported.error.message)

    def _hand_over_batons(self) -> None:
        batons: tuple[tuple[str, UnitPredicate], ...] = (
            (READY_BATON, _not_ready),
            (TAG_BATON, _awaiting_tag),
        )
        for topic, eligible in batons:
            if self.ctx.sync.holds(topic, self.unit):
                successor = self.ctx.sync.pass_on(topic, self.unit, eligible)
                self._log.debug("baton_passed", topic=topic, to=successor.name if successor else None)

    # -- phases ------------------------------------------------------------

    async def _verify(self) -> Result[UnitState, ReleaseError]:
        sync, unit = self.ctx.sync, self.unit
        sequential = self.ctx.options.sequential
        if sequential:
            sync.grant_next(READY_BATON, unit)
            await sync.wait_for(READY_BATON, unit)

        verified = await self.ctx.plugins.verify_conditions(unit)
        unit.flags.ready = True
        if sequential:
            sync.pass_on(READY_BATON, unit, _not_ready)
        if isinstance(verified, Err):
            return verified
        return Ok(UnitState.ANALYZING)

    async def _analyze(self) -> Result[UnitState, ReleaseError]:
        ctx, unit = self.ctx, self.unit
        history = await ctx.history.load(unit.name, unit.dir)
        if isinstance(history, Err):
            return history
        unit.last_release = history.value.last_release
        unit.known_versions = history.value.known_versions
        unit.commits = history.value.commits

        severity = await ctx.plugins.analyze_commits(unit)
        if isinstance(severity, Err):
            return severity
        unit.set_own_severity(severity.value)
        unit.flags.analyzed = True
        self._log.debug(
            "commits_analyzed",
            commits=len(unit.commits),
            last=str(unit.last_version) if unit.last_version else None,
            severity=str(severity.value),
        )

        await ctx.sync.barrier("analyzed", lambda u: u.flags.analyzed)
        propagated = await ctx.propagator.propagate(unit)
        if isinstance(propagated, Err):
            return propagated
        return Ok(UnitState.SEVERITY_FINAL)

    async def _finalize_severity(self) -> Result[UnitState, ReleaseError]:
        ctx, unit = self.ctx, self.unit
        unit.flags.severity_stable = True
        if not unit.effective_severity.releases:
            self._console.info("no release")
            return Ok(UnitState.DONE)

        unit.next_version = planned_version(
            unit.last_version,
            unit.effective_severity,
            ctx.options.prerelease,
            unit.known_versions,
        )
        verified = await ctx.plugins.verify_release(unit)
        if isinstance(verified, Err):
            return verified
        unit.flags.verified = True

        await ctx.sync.barrier("next-release", lambda u: u.flags.verified, scope=_releasing)
        return Ok(UnitState.NOTES_GENERATED)

    async def _generate_notes(self) -> Result[UnitState, ReleaseError]:
        ctx, unit = self.ctx, self.unit
        notes = await ctx.plugins.generate_notes(unit)
        if isinstance(notes, Err):
            return notes
        unit.notes = compose_notes(unit, notes.value)

        if ctx.options.dry_run:
            self._console.info(f"next release {unit.next_version} ({unit.effective_severity})")
            for line in unit.notes.splitlines():
                self._console.print(line)
            return Ok(UnitState.DONE)
        return Ok(UnitState.TAGGING)

    async def _tag(self) -> Result[UnitState, ReleaseError]:
        ctx, unit = self.ctx, self.unit
        unit.flags.ready_to_tag = True
        ctx.sync.grant_next(TAG_BATON, unit)
        await ctx.sync.wait_for(TAG_BATON, unit)
        self._log.debug("tagging_entered")

        updated = self._update_dependency_constraints()
        if isinstance(updated, Err):
            return updated
        prepared = await ctx.plugins.prepare(unit)
        if isinstance(prepared, Err):
            return prepared
        tagged = await ctx.tagger.create_tag(ctx.options.tag_for(unit.name, str(unit.next_version)))
        if isinstance(tagged, Err):
            return tagged

        unit.flags.tagged = True
        ctx.sync.pass_on(TAG_BATON, unit, _awaiting_tag)
        return Ok(UnitState.PREPARED)

    def _update_dependency_constraints(self) -> Result[None, ReleaseError]:
        unit = self.unit
        versions: dict[str, str] = {}
        for dep in unit.changed_deps:
            version = dep.view().carried_version
            if version is None:
                return Err(
                    ReleaseError(
                        kind="unresolved_dependency",
                        message=f"cannot release {unit.name} because dependency {dep.name} has not been released",
                    )
                )
            versions[dep.name] = str(version)

        written = rewrite_constraints(unit.manifest, versions, unit.policy)
        if isinstance(written, Err):
            return written
        unit.manifest = written.value
        if not versions:
            return Ok(None)

        own = unit.path.resolve()
        for root in self.ctx.options.pkg_roots:
            path = (unit.dir / root / "package.json").resolve()
            if path == own:
                continue
            extra = load_manifest(path)
            if isinstance(extra, Err):
                return extra
            rewritten = rewrite_constraints(extra.value, versions, unit.policy)
            if isinstance(rewritten, Err):
                return rewritten
            if rewritten.value is not extra.value:
                unit.root_manifests.append(path)
        return Ok(None)

    async def _publish(self) -> Result[UnitState, ReleaseError]:
        ctx, unit = self.ctx, self.unit
        published = await ctx.plugins.publish(unit)
        if isinstance(published, Err):
            return published
        if published.value is not None:
            unit.release = published.value
            ctx.releases[unit.name] = published.value
        unit.flags.published = True
        return Ok(UnitState.PUBLISHED)

    async def _succeed(self) -> Result[UnitState, ReleaseError]:
        ctx, unit = self.ctx, self.unit
        await ctx.sync.barrier("published", lambda u: u.flags.published, scope=_releasing)

        succeeded = await ctx.plugins.success(unit)
        if isinstance(succeeded, Err):
            return succeeded
        unit.flags.succeeded = True

        await ctx.sync.barrier("succeeded", lambda u: u.flags.succeeded, scope=_releasing)
        if ctx.sync.elect("announce"):
            await self._announce()
        return Ok(UnitState.DONE)

    async def _announce(self) -> None:
        releases = [self.ctx.releases[name] for name in sorted(self.ctx.releases)]
        if not any(not r.private and r.has_commits for r in releases):
            return
        announced = await self.ctx.plugins.announce(releases)
        if isinstance(announced, Err):
            self._console.warning(f"announce failed: {announced.error.pretty()}")
            self._log.warning("announce_failed", message=announced.error.message)
