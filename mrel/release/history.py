"""Release history from git: last release, known versions, unit commits."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mrel.core.config import ReleaseOptions
from mrel.core.result import Err, Ok, Result
from mrel.git.repository import Commit, GitError, Repository
from mrel.release.errors import ReleaseError
from mrel.release.semver import Version, highest, parse_version
from mrel.release.unit import LastRelease


@dataclass(frozen=True, slots=True)
class History:
    last_release: LastRelease | None
    known_versions: list[Version]
    commits: list[Commit]


def _git_failed(e: GitError) -> ReleaseError:
    return ReleaseError(kind="git_failed", message=e.message, hint=f"git {e.command}")


def version_from_tag(tag: str, name: str, tag_format: str) -> Version | None:
    """Version encoded in ``tag`` if it follows ``tag_format`` for ``name``."""
    before, after = tag_format.split("{version}", 1)
    prefix = before.format(name=name)
    suffix = after.format(name=name)
    if not tag.startswith(prefix) or not tag.endswith(suffix):
        return None
    core = tag[len(prefix) : len(tag) - len(suffix)]
    return parse_version(core)


class GitHistory:
    """Default history provider, backed by one ``Repository``."""

    def __init__(self, repo: Repository, options: ReleaseOptions) -> None:
        self._repo = repo
        self._options = options
        self._tags: list[str] | None = None

    async def _all_tags(self) -> Result[list[str], ReleaseError]:
        if self._tags is None:
            result = await self._repo.tags_merged(self._options.branch)
            if isinstance(result, Err):
                return Err(_git_failed(result.error))
            self._tags = result.value
        return Ok(self._tags)

    async def tagged_versions(self, name: str) -> Result[dict[Version, str], ReleaseError]:
        tags = await self._all_tags()
        if isinstance(tags, Err):
            return tags
        versions: dict[Version, str] = {}
        for tag in tags.value:
            version = version_from_tag(tag, name, self._options.tag_format)
            if version is not None:
                versions[version] = tag
        return Ok(versions)

    async def last_release(self, name: str) -> Result[tuple[LastRelease | None, list[Version]], ReleaseError]:
        """Latest release of ``name`` on the branch, plus every version tagged for it.

        Prereleases only count on their own channel.
        """
        tagged = await self.tagged_versions(name)
        if isinstance(tagged, Err):
            return tagged
        versions = tagged.value
        channel = self._options.prerelease
        eligible = [v for v in versions if v.channel is None or (channel and v.channel == channel)]
        latest = highest(eligible)
        if latest is None:
            return Ok((None, sorted(versions)))

        tag = versions[latest]
        head = await self._repo.tag_head(tag)
        if isinstance(head, Err):
            return Err(_git_failed(head.error))
        return Ok((LastRelease(version=latest, git_tag=tag, git_head=head.value), sorted(versions)))

    async def commits(self, directory: Path, since: str | None) -> Result[list[Commit], ReleaseError]:
        first_parent = self._options.branch if self._options.first_parent else None
        result = await self._repo.commits(since=since, paths=[directory], first_parent_branch=first_parent)
        if isinstance(result, Err):
            return Err(_git_failed(result.error))
        return Ok(result.value)

    async def load(self, name: str, directory: Path) -> Result[History, ReleaseError]:
        last = await self.last_release(name)
        if isinstance(last, Err):
            return last
        release, known = last.value
        commits = await self.commits(directory, release.git_head if release else None)
        if isinstance(commits, Err):
            return commits
        return Ok(History(last_release=release, known_versions=known, commits=commits.value))
