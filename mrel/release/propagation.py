"""Dependency-aware severity propagation.

Every active unit runs ``propagate`` concurrently after the "analyzed"
barrier. Rounds are synchronized: in round N a unit computes its candidate
severity from its dependencies' severities as they stood at the end of round
N - 1 (round 0 reads own severities), records whether it changed, and meets
the others at the round barrier. The run is stable once a whole round records
no change. Reads only ever touch the previous round's snapshot, so the result
does not depend on task scheduling.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

import structlog

from mrel.core.result import Err, Ok, Result
from mrel.release.errors import ReleaseError
from mrel.release.resolver import is_constraint_update_required, merge_highest, planned_version
from mrel.release.severity import Severity
from mrel.release.synchronizer import Synchronizer
from mrel.release.unit import Unit

log = structlog.get_logger()

Snapshot = Mapping[str, Severity]


def _empty_snapshot() -> dict[str, Severity]:
    return {}


def _empty_records() -> dict[str, bool]:
    return {}


@dataclass(slots=True)
class _Round:
    severities: dict[str, Severity] = field(default_factory=_empty_snapshot)
    unchanged: dict[str, bool] = field(default_factory=_empty_records)


def is_dependency_updated(
    unit: Unit,
    dep: Unit,
    dep_severity: Severity,
    channel: str | None = None,
) -> bool:
    """True if ``dep``'s planned version forces a constraint rewrite in ``unit``.

    A failed dependency never counts: its history may not have loaded, and
    nothing it planned will ship. Otherwise a dependency that was never
    released always counts as updated.
    """
    if dep.failed:
        return False
    if dep.last_release is None:
        return True

    version = planned_version(dep.last_version, dep_severity, channel, dep.known_versions)
    if version is None:
        return False
    policy = unit.policy
    return any(
        is_constraint_update_required(constraint, str(version), policy.bump, policy.prefix)
        for constraint in unit.manifest.constraints_for(dep.name).values()
    )


def candidate_severity(
    unit: Unit,
    current: Severity,
    snapshot: Snapshot,
    channel: str | None = None,
) -> tuple[Severity, list[Unit]]:
    """Candidate effective severity of ``unit`` and the dependencies judged updated."""
    changed = [
        dep
        for dep in unit.depends_on
        if is_dependency_updated(unit, dep, snapshot.get(dep.name, dep.effective_severity), channel)
    ]
    if unit.last_release is None or not changed:
        return current, changed
    if all(
        dep.last_release is not None and not snapshot.get(dep.name, Severity.NONE).releases
        for dep in changed
    ):
        return current, changed

    rule = unit.policy.release
    if rule == "inherit":
        return merge_highest(current, *(snapshot.get(d.name, Severity.NONE) for d in changed)), changed
    forced = Severity.parse(rule) or Severity.PATCH
    return merge_highest(current, forced), changed


class SeverityPropagator:
    """Synchronized fixpoint over the effective severities of one run.

    Attributes:
        max_rounds: Hard bound on rounds; reaching it is a defect, not a
            configuration problem, and fails the run's units.
    """

    def __init__(self, sync: Synchronizer, units: list[Unit], *, channel: str | None = None) -> None:
        self._sync = sync
        self._units = units
        self._channel = channel
        self.max_rounds = len(units) + 1
        self._initial: dict[str, Severity] | None = None
        self._rounds: list[_Round] = []

    @property
    def rounds(self) -> int:
        """Rounds started so far."""
        return len(self._rounds)

    def _snapshot(self, index: int) -> Snapshot:
        if index >= 0:
            return self._rounds[index].severities
        if self._initial is None:
            self._initial = {u.name: u.own_severity or Severity.NONE for u in self._units}
        return self._initial

    def _round(self, index: int) -> _Round:
        while len(self._rounds) <= index:
            self._rounds.append(_Round())
        return self._rounds[index]

    async def propagate(self, unit: Unit) -> Result[Severity, ReleaseError]:
        """Run rounds for ``unit`` until the whole run is stable."""
        logger = log.bind(unit=unit.name)
        index = 0
        while index < self.max_rounds:
            previous = self._snapshot(index - 1)
            current = previous.get(unit.name, unit.effective_severity)
            candidate, changed = candidate_severity(unit, current, previous, self._channel)

            unit.raise_effective(candidate)
            unit.changed_deps = changed
            record = self._round(index)
            record.severities[unit.name] = unit.effective_severity
            record.unchanged[unit.name] = unit.effective_severity == current
            logger.debug(
                "round_recorded",
                round=index,
                severity=str(unit.effective_severity),
                changed=record.unchanged[unit.name] is False,
            )

            await self._sync.barrier(
                f"propagate-round-{index}",
                lambda u, r=record: u.name in r.unchanged,
            )
            if all(record.unchanged.values()):
                return Ok(unit.effective_severity)
            index += 1

        return Err(
            ReleaseError(
                kind="propagation_diverged",
                message=f"severity propagation did not settle within {self.max_rounds} rounds",
                hint="check the workspace for dependency cycles",
            )
        )
