"""Dependency constraint resolution and next-version computation.

Everything here is pure: no I/O, no shared state. Each function is called
once per (dependent, changed dependency, dependency scope) and is idempotent,
re-resolving an already resolved constraint against the same inputs returns
the same value.
"""

from __future__ import annotations

import re

from mrel.core.config import BumpStrategy, VersionPrefix
from mrel.release.semver import Version, highest, satisfies
from mrel.release.severity import Severity

WORKSPACE_MARKER = "workspace:"
_WORKSPACE_RE = re.compile(r"^workspace:(([\^~*])?.*)$")
_DIGITS_RE = re.compile(r"\d+")


def merge_highest(*severities: Severity) -> Severity:
    """Highest severity wins; no arguments means ``Severity.NONE``."""
    return max(severities, default=Severity.NONE)


def substitute_workspace_marker(constraint: str, next_version: str) -> str:
    """Replace a ``workspace:`` constraint with a publishable one.

    ``workspace:*`` (or a bare ``workspace:``) becomes the version itself,
    ``workspace:^``/``workspace:~`` get that prefix, and
    ``workspace:<range>`` keeps its explicit range.
    """
    if not constraint.startswith(WORKSPACE_MARKER):
        return constraint

    m = _WORKSPACE_RE.match(constraint)
    if m is None:
        return constraint
    range_, prefix = m.group(1), m.group(2)
    if range_ in ("", "*"):
        return next_version
    if prefix == range_:
        return prefix + next_version
    return range_


def _inherit_chunks(constraint: str, next_version: str) -> str:
    # ~1.0.0 + 1.1.0 -> ~1.1.0, 1.x + 2.0.0 -> 2.x; wildcard chunks have no digits.
    next_chunks = next_version.split(".")
    resolved: list[str] = []
    for i, chunk in enumerate(constraint.split(".")):
        if i < len(next_chunks) and next_chunks[i]:
            chunk = _DIGITS_RE.sub(next_chunks[i], chunk, count=1)
        resolved.append(chunk)
    return ".".join(resolved)


def resolve_constraint(
    constraint: str,
    next_version: str,
    strategy: BumpStrategy,
    prefix: VersionPrefix | str = "",
) -> str:
    """Resolve a dependent's recorded constraint against a dependency's next version.

    - ``override``: always ``prefix + next_version``.
    - ``satisfy``: keep the constraint when ``next_version`` satisfies it,
      else behave like ``override``.
    - ``inherit``: keep a satisfied constraint, else rewrite its numeric
      components with the next version's and keep operators and wildcards.
    """
    current = substitute_workspace_marker(constraint, next_version)
    if current == next_version:
        return current

    if strategy in ("satisfy", "inherit") and satisfies(next_version, current):
        return current

    if strategy == "inherit":
        return _inherit_chunks(current, next_version)

    return prefix + next_version


def is_constraint_update_required(
    constraint: str,
    next_version: str,
    strategy: BumpStrategy,
    prefix: VersionPrefix | str = "",
) -> bool:
    return resolve_constraint(constraint, next_version, strategy, prefix) != constraint


def next_version(last: Version | None, severity: Severity) -> Version | None:
    """Version the unit releases next; None when it does not release."""
    if not severity.releases:
        return None
    if last is None:
        return Version(1, 0, 0)
    return last.bump(severity)


def next_prerelease_version(
    last: Version | None,
    severity: Severity,
    channel: str,
    known_versions: list[Version],
) -> Version | None:
    """Next version on a prerelease ``channel``.

    Args:
        last: Last released version of the unit (stable or prerelease).
        severity: Effective severity of the unit.
        channel: Prerelease identifier, e.g. "beta".
        known_versions: Versions parsed from the unit's existing tags.
    """
    if not severity.releases:
        return None
    if last is None or (last.channel is not None and last.channel != channel):
        return Version(1, 0, 0, (channel, 1))
    if last.channel is None:
        stable = last.bump(severity)
        return Version(stable.major, stable.minor, stable.patch, (channel, 1))

    from_last = last.bump_prerelease(channel)
    latest = highest([v for v in known_versions if v.channel == channel])
    if latest is None:
        return from_last
    return max(from_last, latest.bump_prerelease(channel))


def planned_version(
    last: Version | None,
    severity: Severity,
    channel: str | None = None,
    known_versions: list[Version] | None = None,
) -> Version | None:
    """Version a unit will carry after this run: the next one, or the last one if unchanged."""
    if not severity.releases:
        return last
    if channel:
        return next_prerelease_version(last, severity, channel, known_versions or [])
    return next_version(last, severity)