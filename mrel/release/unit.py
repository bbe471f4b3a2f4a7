"""Units: one record per releasable workspace member.

Field ownership is single-writer. The unit's own pipeline task writes its
flags, state, own severity and next version; the severity propagator writes
``effective_severity`` and ``changed_deps``. Other units only read a unit
through ``view()`` snapshots taken at barrier time.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import StrEnum
from pathlib import Path

from mrel.core.config import DepsPolicy
from mrel.git.repository import Commit
from mrel.release.errors import ReleaseError
from mrel.release.manifest import Manifest
from mrel.release.semver import Version
from mrel.release.severity import Severity


class UnitState(StrEnum):
    CREATED = "created"
    VERIFYING = "verifying"
    ANALYZING = "analyzing"
    SEVERITY_FINAL = "severity_final"
    NOTES_GENERATED = "notes_generated"
    TAGGING = "tagging"
    PREPARED = "prepared"
    PUBLISHED = "published"
    DONE = "done"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (UnitState.DONE, UnitState.FAILED)


@dataclass(slots=True)
class UnitFlags:
    """Phase flags; each goes False -> True once and never back."""

    ready: bool = False
    analyzed: bool = False
    severity_stable: bool = False
    verified: bool = False
    ready_to_tag: bool = False
    tagged: bool = False
    published: bool = False
    succeeded: bool = False

    def set_all(self) -> None:
        for f in fields(self):
            setattr(self, f.name, True)


@dataclass(frozen=True, slots=True)
class LastRelease:
    version: Version
    git_tag: str
    git_head: str | None = None


@dataclass(frozen=True, slots=True)
class Release:
    """Descriptor of one published release, handed to the announce step."""

    unit: str
    version: str
    git_tag: str
    name: str
    url: str | None = None
    private: bool = False
    has_commits: bool = False


@dataclass(frozen=True, slots=True)
class UnitView:
    """Immutable snapshot of a unit for cross-unit reads."""

    name: str
    last_version: Version | None
    next_version: Version | None
    effective_severity: Severity
    failed: bool

    @property
    def released_version(self) -> Version | None:
        """Next version, unless the unit failed and will not ship it."""
        return None if self.failed else self.next_version

    @property
    def carried_version(self) -> Version | None:
        """Version dependents should point at: the released one, else the last."""
        return self.released_version or self.last_version


def _no_units() -> list[Unit]:
    return []


def _no_commits() -> list[Commit]:
    return []


def _no_versions() -> list[Version]:
    return []


def _no_paths() -> list[Path]:
    return []


@dataclass(eq=False, slots=True)
class Unit:
    manifest: Manifest
    policy: DepsPolicy = field(default_factory=DepsPolicy)
    depends_on: list[Unit] = field(default_factory=_no_units)

    own_severity: Severity | None = None
    effective_severity: Severity = Severity.NONE
    last_release: LastRelease | None = None
    known_versions: list[Version] = field(default_factory=_no_versions)
    commits: list[Commit] = field(default_factory=_no_commits)
    next_version: Version | None = None
    changed_deps: list[Unit] = field(default_factory=_no_units)
    root_manifests: list[Path] = field(default_factory=_no_paths)
    notes: str | None = None
    release: Release | None = None

    flags: UnitFlags = field(default_factory=UnitFlags)
    state: UnitState = UnitState.CREATED
    error: ReleaseError | None = None
    terminated: bool = False

    def __repr__(self) -> str:
        return f"Unit({self.name!r}, state={self.state}, severity={self.effective_severity})"

    @property
    def name(self) -> str:
        return self.manifest.name

    @property
    def path(self) -> Path:
        return self.manifest.path

    @property
    def dir(self) -> Path:
        return self.manifest.dir

    @property
    def private(self) -> bool:
        return self.manifest.private

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def last_version(self) -> Version | None:
        return self.last_release.version if self.last_release else None

    @property
    def releasing(self) -> bool:
        """Asks for a release and has not failed; meaningful once propagation settled."""
        return self.effective_severity.releases and not self.failed

    def set_own_severity(self, severity: Severity) -> None:
        if self.own_severity is not None:
            raise RuntimeError(f"own severity of {self.name} is already set")
        self.own_severity = severity
        self.effective_severity = severity

    def raise_effective(self, severity: Severity) -> None:
        """Effective severity only ever goes up."""
        if severity > self.effective_severity:
            self.effective_severity = severity

    def mark_failed(self, error: ReleaseError) -> None:
        """Record the failure and set every flag so no sibling waits on this unit."""
        if self.error is None:
            self.error = error
        self.flags.set_all()
        self.state = UnitState.FAILED

    def view(self) -> UnitView:
        return UnitView(
            name=self.name,
            last_version=self.last_version,
            next_version=self.next_version,
            effective_severity=self.effective_severity,
            failed=self.failed,
        )
