from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

from mrel.core.result import Err, Ok
from mrel.release.workspace import find_manifest_paths, load_workspace

WritePackage = Callable[..., Path]


def _root(tmp_path: Path, workspaces: object) -> Path:
    (tmp_path / "package.json").write_text(json.dumps({"name": "root", "private": True, "workspaces": workspaces}))
    return tmp_path


def test_members_sorted(tmp_path: Path, write_pkg: WritePackage) -> None:
    root = _root(tmp_path, ["packages/*"])
    write_pkg(root / "packages" / "b", "b")
    write_pkg(root / "packages" / "a", "a")
    (root / "packages" / "not-a-package").mkdir()
    result = load_workspace(root)
    assert isinstance(result, Ok)
    assert [m.name for m in result.value] == ["a", "b"]


def test_packages_table_and_negation(tmp_path: Path, write_pkg: WritePackage) -> None:
    root = _root(tmp_path, {"packages": ["packages/*", "tools/cli", "!packages/legacy"]})
    write_pkg(root / "packages" / "a", "a")
    write_pkg(root / "packages" / "legacy", "legacy")
    write_pkg(root / "tools" / "cli", "cli")
    result = load_workspace(root)
    assert isinstance(result, Ok)
    assert sorted(m.name for m in result.value) == ["a", "cli"]


def test_ignore_patterns(tmp_path: Path, write_pkg: WritePackage) -> None:
    root = _root(tmp_path, ["packages/*"])
    write_pkg(root / "packages" / "a", "a")
    write_pkg(root / "packages" / "docs-site", "docs-site")
    result = find_manifest_paths(root, ["packages/docs-*"])
    assert isinstance(result, Ok)
    assert result.value == [root / "packages" / "a" / "package.json"]


def test_no_units(tmp_path: Path) -> None:
    root = _root(tmp_path, ["packages/*"])
    result = load_workspace(root)
    assert isinstance(result, Err)
    assert result.error.kind == "no_units"
    assert result.error.message == "project must contain one or more workspace packages"


def test_missing_root_manifest(tmp_path: Path) -> None:
    result = load_workspace(tmp_path)
    assert isinstance(result, Err)
    assert result.error.kind == "config_invalid"


def test_invalid_member_aborts(tmp_path: Path, write_pkg: WritePackage) -> None:
    root = _root(tmp_path, ["packages/*"])
    write_pkg(root / "packages" / "a", "a")
    (root / "packages" / "b").mkdir(parents=True)
    (root / "packages" / "b" / "package.json").write_text('{"version": "1.0.0"}')
    result = load_workspace(root)
    assert isinstance(result, Err)
    assert result.error.kind == "config_invalid"


def test_duplicate_names(tmp_path: Path, write_pkg: WritePackage) -> None:
    root = _root(tmp_path, ["packages/*"])
    write_pkg(root / "packages" / "a", "same")
    write_pkg(root / "packages" / "b", "same")
    result = load_workspace(root)
    assert isinstance(result, Err)
    assert "duplicate package name" in result.error.message
