"""Workspace enumeration.

The root package.json lists member directories as glob patterns under
``workspaces`` (a list, or ``{"packages": [...]}``). Each matching directory
holding a package.json is a unit candidate.
"""

from __future__ import annotations

from collections.abc import Sequence
from fnmatch import fnmatch
from pathlib import Path

from mrel.core.result import Err, Ok, Result
from mrel.core.structured import get_str_list, get_table
from mrel.release.errors import ReleaseError
from mrel.release.manifest import MANIFEST_NAME, Manifest, load_manifest


def workspace_patterns(root_manifest: Manifest) -> list[str] | None:
    data = root_manifest.data
    patterns = get_str_list(data, "workspaces")
    if patterns is not None:
        return patterns
    table = get_table(data, "workspaces")
    if table is not None:
        return get_str_list(table, "packages")
    return None


def _is_ignored(rel: str, ignore: Sequence[str]) -> bool:
    rel_manifest = f"{rel}/{MANIFEST_NAME}"
    for pattern in ignore:
        pattern = pattern.rstrip("/")
        if fnmatch(rel, pattern) or fnmatch(rel_manifest, pattern):
            return True
    return False


def find_manifest_paths(root: Path, ignore: Sequence[str] = ()) -> Result[list[Path], ReleaseError]:
    """Manifest paths of every workspace member, sorted, minus ignored ones."""
    root_manifest = load_manifest(root / MANIFEST_NAME)
    if isinstance(root_manifest, Err):
        return root_manifest

    patterns = workspace_patterns(root_manifest.value) or []
    excluded = [p[1:] for p in patterns if p.startswith("!")]
    found: dict[Path, None] = {}
    for pattern in patterns:
        if pattern.startswith("!"):
            continue
        for directory in sorted(root.glob(pattern.rstrip("/"))):
            manifest = directory / MANIFEST_NAME
            if not directory.is_dir() or not manifest.is_file():
                continue
            rel = directory.relative_to(root).as_posix()
            if _is_ignored(rel, [*excluded, *ignore]):
                continue
            found.setdefault(manifest, None)

    if not found:
        return Err(
            ReleaseError(
                kind="no_units",
                message="project must contain one or more workspace packages",
                hint=f"check `workspaces` in {root / MANIFEST_NAME}",
            )
        )
    return Ok(sorted(found))


def load_workspace(root: Path, ignore: Sequence[str] = ()) -> Result[list[Manifest], ReleaseError]:
    """Load every member manifest; the first invalid one aborts the run."""
    paths = find_manifest_paths(root, ignore)
    if isinstance(paths, Err):
        return paths

    manifests: list[Manifest] = []
    names: dict[str, Path] = {}
    for path in paths.value:
        loaded = load_manifest(path)
        if isinstance(loaded, Err):
            return loaded
        manifest = loaded.value
        if manifest.name in names:
            return Err(
                ReleaseError(
                    kind="config_invalid",
                    message=f"duplicate package name {manifest.name!r}",
                    hint=f"{names[manifest.name]} and {path}",
                )
            )
        names[manifest.name] = path
        manifests.append(manifest)
    return Ok(manifests)
