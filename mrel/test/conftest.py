"""Shared fixtures: on-disk units and in-memory collaborators."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from mrel.core.config import Config, DepsPolicy
from mrel.core.result import Err, Ok, Result
from mrel.git.repository import Commit
from mrel.output.console import MockConsole
from mrel.release.errors import ReleaseError
from mrel.release.graph import DependencyGraph, resolve_edges
from mrel.release.history import History
from mrel.release.manifest import load_manifest
from mrel.release.runner import RunReport, release_units
from mrel.release.semver import Version, parse_version
from mrel.release.severity import Severity
from mrel.release.unit import LastRelease, Release, Unit


def write_package(
    directory: Path,
    name: str,
    *,
    version: str | None = "1.0.0",
    private: bool = False,
    indent: int = 2,
    **scopes: dict[str, str],
) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    data: dict[str, object] = {"name": name}
    if version is not None:
        data["version"] = version
    if private:
        data["private"] = True
    data.update(scopes)
    path = directory / "package.json"
    path.write_text(json.dumps(data, indent=indent) + "\n", encoding="utf-8")
    return path


WritePackage = Callable[..., Path]


@pytest.fixture
def write_pkg() -> WritePackage:
    return write_package


MakeUnit = Callable[..., Unit]


@pytest.fixture
def make_unit(tmp_path: Path) -> MakeUnit:
    """Build a Unit backed by a real package.json under tmp_path/packages/<name>."""

    def factory(
        name: str,
        *,
        deps: dict[str, str] | None = None,
        dev_deps: dict[str, str] | None = None,
        last: str | None = "1.0.0",
        private: bool = False,
        policy: DepsPolicy | None = None,
    ) -> Unit:
        scopes: dict[str, dict[str, str]] = {}
        if deps:
            scopes["dependencies"] = deps
        if dev_deps:
            scopes["devDependencies"] = dev_deps
        path = write_package(tmp_path / "packages" / name, name, version=last, private=private, **scopes)
        manifest = load_manifest(path)
        assert isinstance(manifest, Ok)
        unit = Unit(manifest=manifest.value, policy=policy or DepsPolicy())
        if last is not None:
            version = parse_version(last)
            assert version is not None
            unit.last_release = LastRelease(version=version, git_tag=f"{name}@{last}", git_head="0" * 40)
            unit.known_versions = [version]
        return unit

    return factory


def commit(subject: str, body: str = "", sha: str = "a" * 40) -> Commit:
    return Commit(sha=sha, subject=subject, body=body)


@dataclass
class FakeHistory:
    """History keyed by unit name; units default to "released at 1.0.0, no commits"."""

    histories: dict[str, History] = field(default_factory=dict)
    errors: dict[str, ReleaseError] = field(default_factory=dict)

    def set(self, name: str, *, last: str | None = "1.0.0", commits: Sequence[Commit] = ()) -> None:
        release: LastRelease | None = None
        known: list[Version] = []
        if last is not None:
            version = parse_version(last)
            assert version is not None
            release = LastRelease(version=version, git_tag=f"{name}@{last}", git_head="0" * 40)
            known = [version]
        self.histories[name] = History(last_release=release, known_versions=known, commits=list(commits))

    async def load(self, name: str, directory: Path) -> Result[History, ReleaseError]:
        await asyncio.sleep(0)
        if name in self.errors:
            return Err(self.errors[name])
        if name not in self.histories:
            self.set(name)
        return Ok(self.histories[name])


@dataclass
class FakeTagger:
    tags: list[str] = field(default_factory=list)

    async def create_tag(self, tag: str) -> Result[None, ReleaseError]:
        await asyncio.sleep(0)
        self.tags.append(tag)
        return Ok(None)


@dataclass
class FakePlugins:
    """Records hook calls; severities, failures and exceptions are configurable per unit."""

    severities: dict[str, Severity] = field(default_factory=dict)
    fail_at: dict[str, str] = field(default_factory=dict)
    raise_at: dict[str, str] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)
    failed: dict[str, ReleaseError] = field(default_factory=dict)
    announced: list[list[Release]] = field(default_factory=list)
    in_critical: int = 0
    max_in_critical: int = 0
    prepare_order: list[str] = field(default_factory=list)
    verify_order: list[str] = field(default_factory=list)
    on_prepare: Callable[[Unit], Awaitable[None]] | None = None

    def _check(self, unit: Unit, hook: str) -> Result[None, ReleaseError]:
        self.calls.append((unit.name, hook))
        if self.raise_at.get(unit.name) == hook:
            raise RuntimeError(f"{hook} exploded")
        if self.fail_at.get(unit.name) == hook:
            return Err(ReleaseError(kind="collaborator_failed", message=f"{hook} failed for {unit.name}"))
        return Ok(None)

    def called(self, hook: str) -> list[str]:
        return [name for name, h in self.calls if h == hook]

    async def verify_conditions(self, unit: Unit) -> Result[None, ReleaseError]:
        self.verify_order.append(unit.name)
        await asyncio.sleep(0)
        return self._check(unit, "verify_conditions")

    async def analyze_commits(self, unit: Unit) -> Result[Severity, ReleaseError]:
        checked = self._check(unit, "analyze_commits")
        if isinstance(checked, Err):
            return checked
        return Ok(self.severities.get(unit.name, Severity.NONE))

    async def verify_release(self, unit: Unit) -> Result[None, ReleaseError]:
        return self._check(unit, "verify_release")

    async def generate_notes(self, unit: Unit) -> Result[str | None, ReleaseError]:
        checked = self._check(unit, "generate_notes")
        if isinstance(checked, Err):
            return checked
        return Ok(f"## {unit.next_version} (2026-01-01)\n\n* change")

    async def prepare(self, unit: Unit) -> Result[None, ReleaseError]:
        self.in_critical += 1
        self.max_in_critical = max(self.max_in_critical, self.in_critical)
        try:
            self.prepare_order.append(unit.name)
            for _ in range(3):
                await asyncio.sleep(0)
            if self.on_prepare is not None:
                await self.on_prepare(unit)
            return self._check(unit, "prepare")
        finally:
            self.in_critical -= 1

    async def publish(self, unit: Unit) -> Result[Release | None, ReleaseError]:
        checked = self._check(unit, "publish")
        if isinstance(checked, Err):
            return checked
        return Ok(
            Release(
                unit=unit.name,
                version=str(unit.next_version),
                git_tag=f"{unit.name}@{unit.next_version}",
                name="git tag",
                private=unit.private,
                has_commits=True,
            )
        )

    async def success(self, unit: Unit) -> Result[None, ReleaseError]:
        return self._check(unit, "success")

    async def fail(self, unit: Unit, error: ReleaseError) -> Result[None, ReleaseError]:
        self.failed[unit.name] = error
        return Ok(None)

    async def announce(self, releases: Sequence[Release]) -> Result[None, ReleaseError]:
        self.announced.append(list(releases))
        return Ok(None)


@pytest.fixture
def plugins() -> FakePlugins:
    return FakePlugins()


@pytest.fixture
def history() -> FakeHistory:
    return FakeHistory()


@pytest.fixture
def tagger() -> FakeTagger:
    return FakeTagger()


RunUnits = Callable[..., Awaitable[RunReport]]


@pytest.fixture
def run_units(plugins: FakePlugins, history: FakeHistory, tagger: FakeTagger) -> RunUnits:
    """Resolve edges between ``units`` and release them with the fake collaborators."""

    async def runner(units: list[Unit], config: Config | None = None, console: MockConsole | None = None) -> RunReport:
        resolve_edges(units)
        return await release_units(
            DependencyGraph(units),
            config or Config(),
            plugins=plugins,
            history=history,
            tagger=tagger,
            console=console or MockConsole(),
        )

    return runner
