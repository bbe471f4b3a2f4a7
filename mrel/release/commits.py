"""Conventional-commit classification used by the default plugins."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from mrel.git.repository import Commit
from mrel.release.severity import Severity

_HEADER_RE = re.compile(r"^(?P<type>[A-Za-z]+)(?:\((?P<scope>[^)]*)\))?(?P<bang>!)?:\s*(?P<subject>.+)$")
_BREAKING_RE = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)

_TYPE_SEVERITY: dict[str, Severity] = {
    "feat": Severity.MINOR,
    "fix": Severity.PATCH,
    "perf": Severity.PATCH,
}

SECTION_TITLES: dict[str, str] = {
    "breaking": "BREAKING CHANGES",
    "feat": "Features",
    "fix": "Bug Fixes",
    "perf": "Performance Improvements",
}


@dataclass(frozen=True, slots=True)
class ParsedCommit:
    commit: Commit
    type: str | None
    scope: str | None
    subject: str
    breaking: bool

    @property
    def severity(self) -> Severity:
        if self.breaking:
            return Severity.MAJOR
        return _TYPE_SEVERITY.get(self.type or "", Severity.NONE)


def parse_commit(commit: Commit) -> ParsedCommit:
    m = _HEADER_RE.match(commit.subject.strip())
    breaking = _BREAKING_RE.search(commit.body) is not None
    if m is None:
        return ParsedCommit(commit, None, None, commit.subject.strip(), breaking)
    return ParsedCommit(
        commit=commit,
        type=m.group("type").lower(),
        scope=m.group("scope") or None,
        subject=m.group("subject").strip(),
        breaking=breaking or m.group("bang") is not None,
    )


def classify(commits: Iterable[Commit]) -> Severity:
    """Highest severity among ``commits``; NONE for an empty history."""
    return max((parse_commit(c).severity for c in commits), default=Severity.NONE)
