"""package.json manifests.

A manifest is read once per run. The raw text is kept alongside the parsed
document so a rewrite can reproduce the original indentation and trailing
newline, and a rewrite that changes nothing leaves the file untouched.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from mrel.core.config import DepsPolicy
from mrel.core.result import Err, Ok, Result
from mrel.core.structured import StrDict, as_str_dict, get_bool, get_str, get_str_map
from mrel.platform.files import write_if_changed
from mrel.release.errors import ReleaseError
from mrel.release.resolver import resolve_constraint

DependencyScope = Literal["dependencies", "devDependencies", "peerDependencies", "optionalDependencies"]

DEPENDENCY_SCOPES: tuple[DependencyScope, ...] = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)

MANIFEST_NAME = "package.json"

_INDENT_RE = re.compile(r"^([ \t]+)\S", re.MULTILINE)


def _empty_scopes() -> dict[DependencyScope, dict[str, str]]:
    return {}


@dataclass(frozen=True, slots=True)
class Manifest:
    path: Path
    name: str
    version: str | None
    private: bool
    scopes: dict[DependencyScope, dict[str, str]] = field(default_factory=_empty_scopes)
    data: StrDict = field(default_factory=dict)
    contents: str = ""

    @property
    def dir(self) -> Path:
        return self.path.parent

    @property
    def dependency_names(self) -> tuple[str, ...]:
        """Names declared in any scope, first occurrence order, no duplicates."""
        seen: dict[str, None] = {}
        for scope in DEPENDENCY_SCOPES:
            for name in self.scopes.get(scope, {}):
                seen.setdefault(name, None)
        return tuple(seen)

    def constraints_for(self, dep: str) -> dict[DependencyScope, str]:
        """Constraint recorded for ``dep`` in each scope that declares it."""
        return {
            scope: deps[dep] for scope, deps in self.scopes.items() if dep in deps
        }


def detect_format(contents: str) -> tuple[str | None, str]:
    """Indentation and trailing newline of a JSON document."""
    m = _INDENT_RE.search(contents)
    indent = m.group(1) if m else None
    if contents.endswith("\r\n"):
        trailing = "\r\n"
    elif contents.endswith("\n"):
        trailing = "\n"
    else:
        trailing = ""
    return indent, trailing


def _invalid(message: str, path: Path) -> Err[ReleaseError]:
    return Err(ReleaseError(kind="config_invalid", message=message, hint=str(path)))


def load_manifest(path: Path) -> Result[Manifest, ReleaseError]:
    """Read and validate a package.json."""
    if not path.exists():
        return _invalid(f"package.json file not found: {path}", path)
    if not path.is_file():
        return _invalid(f"package.json is not a file: {path}", path)
    try:
        contents = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return _invalid(f"package.json cannot be read: {e}", path)

    try:
        obj: object = json.loads(contents)
    except json.JSONDecodeError as e:
        return _invalid(f"package.json could not be parsed: {e}", path)

    data = as_str_dict(obj)
    if data is None:
        return _invalid(f"package.json was not an object: {path}", path)

    name = get_str(data, "name")
    if name is None:
        return _invalid(f"package name must be a non-empty string: {path}", path)

    scopes: dict[DependencyScope, dict[str, str]] = {}
    for scope in DEPENDENCY_SCOPES:
        if scope not in data:
            continue
        deps = get_str_map(data, scope)
        if deps is None:
            return _invalid(f"package {scope} must be an object of strings: {path}", path)
        scopes[scope] = deps

    return Ok(
        Manifest(
            path=path,
            name=name,
            version=get_str(data, "version"),
            private=bool(get_bool(data, "private")),
            scopes=scopes,
            data=data,
            contents=contents,
        )
    )


def render_manifest(
    manifest: Manifest,
    *,
    version: str | None = None,
    constraints: Mapping[DependencyScope, Mapping[str, str]] | None = None,
) -> str:
    """Serialize ``manifest`` with updates applied, in its original format."""
    data = json.loads(json.dumps(manifest.data))
    if version is not None:
        data["version"] = version
    for scope, updates in (constraints or {}).items():
        table = data.get(scope)
        if not isinstance(table, dict):
            continue
        for dep, value in updates.items():
            if dep in table:
                table[dep] = value

    indent, trailing = detect_format(manifest.contents)
    return json.dumps(data, indent=indent, ensure_ascii=False) + trailing


def write_manifest(
    manifest: Manifest,
    *,
    version: str | None = None,
    constraints: Mapping[DependencyScope, Mapping[str, str]] | None = None,
) -> Result[Manifest, ReleaseError]:
    """Apply updates to the file on disk and return the reloaded manifest.

    The same ``manifest`` object comes back when nothing changed.
    """
    if version is None and not any((constraints or {}).values()):
        return Ok(manifest)

    text = render_manifest(manifest, version=version, constraints=constraints)
    try:
        if not write_if_changed(manifest.path, text):
            return Ok(manifest)
    except OSError as e:
        return Err(
            ReleaseError(
                kind="collaborator_failed",
                message=f"failed to write {manifest.path.name}: {e}",
                hint=str(manifest.path),
            )
        )
    return load_manifest(manifest.path)


def rewrite_constraints(
    manifest: Manifest,
    versions: Mapping[str, str],
    policy: DepsPolicy,
) -> Result[Manifest, ReleaseError]:
    """Point ``manifest``'s constraints on each dependency at its version in ``versions``."""
    updates: dict[DependencyScope, dict[str, str]] = {}
    for name, version in versions.items():
        for scope, constraint in manifest.constraints_for(name).items():
            resolved = resolve_constraint(constraint, version, policy.bump, policy.prefix)
            if resolved != constraint:
                updates.setdefault(scope, {})[name] = resolved
    return write_manifest(manifest, constraints=updates)
