"""Collaborator protocols and the default implementations.

The pipeline driver decides *when* each hook runs; collaborators decide
*what* happens. Every hook is a coroutine returning a Result so that an
expected failure travels to the unit report unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from mrel.core.config import ReleaseOptions
from mrel.core.result import Err, Ok, Result
from mrel.git.repository import Repository
from mrel.output.console import ConsoleProtocol, ScopedConsole
from mrel.release.commits import classify
from mrel.release.errors import ReleaseError
from mrel.release.history import History
from mrel.release.manifest import write_manifest
from mrel.release.notes import render_commit_notes, render_summary
from mrel.release.severity import Severity
from mrel.release.unit import Release, Unit


class HistoryProvider(Protocol):
    async def load(self, name: str, directory: Path) -> Result[History, ReleaseError]: ...


class Tagger(Protocol):
    async def create_tag(self, tag: str) -> Result[None, ReleaseError]: ...


class ReleasePlugins(Protocol):
    async def verify_conditions(self, unit: Unit) -> Result[None, ReleaseError]: ...

    async def analyze_commits(self, unit: Unit) -> Result[Severity, ReleaseError]: ...

    async def verify_release(self, unit: Unit) -> Result[None, ReleaseError]: ...

    async def generate_notes(self, unit: Unit) -> Result[str | None, ReleaseError]: ...

    async def prepare(self, unit: Unit) -> Result[None, ReleaseError]: ...

    async def publish(self, unit: Unit) -> Result[Release | None, ReleaseError]: ...

    async def success(self, unit: Unit) -> Result[None, ReleaseError]: ...

    async def fail(self, unit: Unit, error: ReleaseError) -> Result[None, ReleaseError]: ...

    async def announce(self, releases: Sequence[Release]) -> Result[None, ReleaseError]: ...


def _git_error(message: str, command: str) -> ReleaseError:
    return ReleaseError(kind="git_failed", message=message, hint=f"git {command}")


class GitTagger:
    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    async def create_tag(self, tag: str) -> Result[None, ReleaseError]:
        result = await self._repo.create_tag(tag)
        if isinstance(result, Err):
            return Err(_git_error(result.error.message, result.error.command))
        return Ok(None)


class DefaultPlugins:
    """Conventional commits in, git commits and tags out."""

    def __init__(self, console: ConsoleProtocol, repo: Repository, options: ReleaseOptions) -> None:
        self._console = console
        self._repo = repo
        self._options = options

    def _scoped(self, unit: Unit) -> ConsoleProtocol:
        return ScopedConsole(self._console, unit.name)

    def _tag(self, unit: Unit) -> str:
        return self._options.tag_for(unit.name, str(unit.next_version))

    async def verify_conditions(self, unit: Unit) -> Result[None, ReleaseError]:
        if not unit.path.is_file():
            return Err(
                ReleaseError(kind="config_invalid", message=f"package.json not found: {unit.path}")
            )
        return Ok(None)

    async def analyze_commits(self, unit: Unit) -> Result[Severity, ReleaseError]:
        return Ok(classify(unit.commits))

    async def verify_release(self, unit: Unit) -> Result[None, ReleaseError]:
        if unit.next_version is not None and unit.next_version in unit.known_versions:
            return Err(
                ReleaseError(
                    kind="invalid_input",
                    message=f"tag {self._tag(unit)} already exists",
                    hint="fetch tags or check the branch the release runs on",
                )
            )
        return Ok(None)

    async def generate_notes(self, unit: Unit) -> Result[str | None, ReleaseError]:
        return Ok(render_commit_notes(str(unit.next_version), unit.commits))

    async def prepare(self, unit: Unit) -> Result[None, ReleaseError]:
        written = write_manifest(unit.manifest, version=str(unit.next_version))
        if isinstance(written, Err):
            return written
        unit.manifest = written.value

        tag = self._tag(unit)
        paths = [unit.path, *unit.root_manifests]
        committed = await self._repo.commit_paths(paths, f"chore(release): {tag} [skip ci]")
        if isinstance(committed, Err):
            return Err(_git_error(committed.error.message, committed.error.command))

        if self._options.push:
            pushed = await self._repo.push_branch(self._options.branch)
            if isinstance(pushed, Err):
                return Err(_git_error(pushed.error.message, pushed.error.command))
        return Ok(None)

    async def publish(self, unit: Unit) -> Result[Release | None, ReleaseError]:
        tag = self._tag(unit)
        if self._options.push:
            pushed = await self._repo.push_tag(tag)
            if isinstance(pushed, Err):
                return Err(_git_error(pushed.error.message, pushed.error.command))
        return Ok(
            Release(
                unit=unit.name,
                version=str(unit.next_version),
                git_tag=tag,
                name="git tag",
                private=unit.private,
                has_commits=bool(unit.commits),
            )
        )

    async def success(self, unit: Unit) -> Result[None, ReleaseError]:
        self._scoped(unit).success(f"released {self._tag(unit)}")
        return Ok(None)

    async def fail(self, unit: Unit, error: ReleaseError) -> Result[None, ReleaseError]:
        self._scoped(unit).error(error.pretty())
        return Ok(None)

    async def announce(self, releases: Sequence[Release]) -> Result[None, ReleaseError]:
        self._console.header("Released")
        for line in render_summary(releases):
            self._console.print(f"  {line}")
        return Ok(None)
