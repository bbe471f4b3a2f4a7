"""Git repository abstraction.

Only the operations a release run needs: tag discovery, commit history scoped
to a directory, committing manifest changes, and creating/pushing tags.
Every method returns a Result; none raises for a failing git command.

Usage:
    repo = Repository(workspace_root)
    match await repo.commits(since=last_head, paths=[unit_dir]):
        case Ok(commits):
            ...
        case Err(e):
            console.error(e.message)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from mrel.core.result import Err, Ok, Result
from mrel.platform.process import ProcessError, run_async

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

# Field and record separators for `git log --format`.
_FS = "\x1f"
_RS = "\x1e"

__all__ = ["Commit", "GitError", "Repository"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class Commit:
    sha: str
    subject: str
    body: str = ""

    @property
    def short_sha(self) -> str:
        return self.sha[:8]


class Repository:
    """Async git operations on one working tree.

    Attributes:
        path: Directory git commands run in (any directory inside the tree).
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    async def toplevel(self) -> Result[Path, GitError]:
        result = await self._git(["rev-parse", "--show-toplevel"], "rev-parse")
        return result.map(lambda out: Path(out.strip()))

    async def tags_merged(self, branch: str) -> Result[list[str], GitError]:
        """Tags reachable from ``branch``."""
        result = await self._git(["tag", "--merged", branch], "tag --merged")
        return result.map(lambda out: [t.strip() for t in out.splitlines() if t.strip()])

    async def tag_head(self, tag: str) -> Result[str, GitError]:
        """Commit sha a tag points to."""
        result = await self._git(["rev-list", "-1", tag], "rev-list")
        return result.map(str.strip)

    async def commits(
        self,
        *,
        since: str | None,
        until: str | None = None,
        paths: Sequence[Path] = (),
        first_parent_branch: str | None = None,
    ) -> Result[list[Commit], GitError]:
        """Commits in ``since..until`` (default HEAD) touching ``paths``, newest first."""
        rev = (f"{since}.." if since else "") + (until or "HEAD")
        args = ["log", f"--format=%H{_FS}%s{_FS}%b{_RS}"]
        if first_parent_branch:
            args += ["--first-parent", first_parent_branch]
        args.append(rev)
        if paths:
            args += ["--", *(str(p) for p in paths)]

        result = await self._git(args, "log")
        match result:
            case Err(e):
                return Err(e)
            case Ok(stdout):
                return Ok(_parse_log(stdout))

    async def has_changes(self, paths: Sequence[Path]) -> Result[bool, GitError]:
        result = await self._git(["status", "--porcelain", "--", *(str(p) for p in paths)], "status")
        return result.map(lambda out: out.strip() != "")

    async def commit_paths(self, paths: Sequence[Path], message: str) -> Result[None, GitError]:
        """Stage ``paths`` and commit them (no-op when they are unchanged)."""
        changed = await self.has_changes(paths)
        if isinstance(changed, Err):
            return changed
        if not changed.value:
            return Ok(None)

        added = await self._git(["add", "--", *(str(p) for p in paths)], "add")
        if isinstance(added, Err):
            return added
        committed = await self._git(["commit", "-m", message, "--", *(str(p) for p in paths)], "commit")
        return committed.map(lambda _: None)

    async def create_tag(self, tag: str, ref: str = "HEAD") -> Result[None, GitError]:
        result = await self._git(["tag", tag, ref], "tag")
        return result.map(lambda _: None)

    async def push_tag(self, tag: str, remote: str = "origin") -> Result[None, GitError]:
        result = await self._git(["push", remote, f"refs/tags/{tag}"], "push")
        return result.map(lambda _: None)

    async def push_branch(self, branch: str, remote: str = "origin") -> Result[None, GitError]:
        result = await self._git(["push", remote, f"HEAD:refs/heads/{branch}"], "push")
        return result.map(lambda _: None)

    async def _git(self, args: list[str], label: str) -> Result[str, GitError]:
        timeout = _GIT_NETWORK_TIMEOUT_SECONDS if args[0] == "push" else _GIT_TIMEOUT_SECONDS
        result = await run_async(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)
        match result:
            case Err(e):
                return Err(_to_git_error(label, e))
            case Ok(stdout):
                return Ok(stdout)


def _to_git_error(label: str, e: ProcessError) -> GitError:
    return GitError(
        command=label,
        message=e.detail or f"git {label} failed",
        returncode=e.returncode,
    )


def _parse_log(output: str) -> list[Commit]:
    commits: list[Commit] = []
    for record in output.split(_RS):
        record = record.strip("\n")
        if not record.strip():
            continue
        parts = record.split(_FS)
        if len(parts) < 2:
            continue
        sha = parts[0].strip()
        subject = parts[1].strip()
        body = parts[2].strip() if len(parts) > 2 else ""
        commits.append(Commit(sha=sha, subject=subject, body=body))
    return commits
