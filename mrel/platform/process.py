"""Subprocess execution with Result-based error handling.

Release runs only shell out to git. ``run`` captures stdout; ``run_async``
runs the same call in a worker thread so a unit task awaiting git does not
block sibling units on the event loop.
"""

from __future__ import annotations

import asyncio
import subprocess
from dataclasses import dataclass
from pathlib import Path

from mrel.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "run_async"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that exited non-zero, timed out, or could not start (returncode -1)."""

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def detail(self) -> str:
        """Most useful diagnostic text: stderr, else stdout, else empty."""
        return self.stderr.strip() or self.stdout.strip()

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"


def _failure(cmd: list[str], returncode: int, *, stdout: str = "", stderr: str = "") -> Err[ProcessError]:
    return Err(ProcessError(command=tuple(cmd), returncode=returncode, stdout=stdout, stderr=stderr))


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return _failure(cmd, -1, stderr=f"Command timed out after {timeout}s")
    except OSError as e:
        return _failure(cmd, -1, stderr=str(e))

    if proc.returncode != 0:
        return _failure(cmd, proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
    return Ok(proc.stdout)


async def run_async(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    return await asyncio.to_thread(run, cmd, cwd, env, timeout=timeout)
