"""Workspace detection.

The workspace is the directory whose package.json declares ``workspaces``
(or that holds an ``mrel.toml``). Release runs, configuration and tag lookup
are all relative to it.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from .config import CONFIG_FILE_NAME
from .result import Err, Ok, Result
from .structured import as_str_dict

__all__ = [
    "WORKSPACE_ENV_VAR",
    "Workspace",
    "WorkspaceError",
    "detect_workspace",
    "find_workspace_upward",
    "is_workspace_root",
]

WORKSPACE_ENV_VAR = "MREL_WORKSPACE"


@dataclass(frozen=True)
class WorkspaceError:
    """Error when workspace cannot be detected."""

    message: str
    searched_from: Path | None = None


@dataclass(frozen=True, slots=True)
class Workspace:
    root: Path

    @property
    def config_path(self) -> Path:
        """Path to mrel.toml (optional)."""
        return self.root / CONFIG_FILE_NAME

    @property
    def manifest_path(self) -> Path:
        """Path to the root package.json."""
        return self.root / "package.json"

    def __str__(self) -> str:
        return str(self.root)


def _declares_workspaces(manifest: Path) -> bool:
    try:
        data = as_str_dict(json.loads(manifest.read_text(encoding="utf-8")))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return False
    return data is not None and "workspaces" in data


def is_workspace_root(path: Path) -> bool:
    """True if ``path`` has an mrel.toml or a package.json declaring ``workspaces``."""
    if (path / CONFIG_FILE_NAME).is_file():
        return True
    manifest = path / "package.json"
    return manifest.is_file() and _declares_workspaces(manifest)


def find_workspace_upward(start: Path) -> Path | None:
    for parent in (start, *start.parents):
        if is_workspace_root(parent):
            return parent
    return None


def detect_workspace(
    *,
    start_dir: Path | None = None,
    env_var: str = WORKSPACE_ENV_VAR,
) -> Result[Workspace, WorkspaceError]:
    """Detect the workspace root directory.

    Detection order:
    1. ``$MREL_WORKSPACE`` (if set, it must be valid)
    2. Search upward from start_dir (or cwd)
    """
    env_value = os.environ.get(env_var)
    if env_value:
        env_path = Path(env_value).expanduser().resolve()
        if env_path.is_dir() and is_workspace_root(env_path):
            return Ok(Workspace(root=env_path))
        return Err(
            WorkspaceError(
                message=f"${env_var} is set to '{env_value}' but it is not a valid workspace",
                searched_from=env_path if env_path.is_dir() else None,
            )
        )

    search_start = (start_dir or Path.cwd()).resolve()
    found = find_workspace_upward(search_start)
    if found is None:
        return Err(
            WorkspaceError(
                message="Could not find workspace (no package.json with `workspaces` found)",
                searched_from=search_start,
            )
        )
    return Ok(Workspace(root=found))
