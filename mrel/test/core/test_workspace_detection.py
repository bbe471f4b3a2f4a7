from __future__ import annotations

import json
from pathlib import Path

import pytest

from mrel.core.result import Err, Ok
from mrel.core.workspace import WORKSPACE_ENV_VAR, detect_workspace, find_workspace_upward, is_workspace_root


def _root(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    (path / "package.json").write_text(json.dumps({"name": "root", "workspaces": ["packages/*"]}))
    return path


def test_is_workspace_root(tmp_path: Path) -> None:
    assert is_workspace_root(tmp_path) is False
    (tmp_path / "package.json").write_text('{"name": "solo"}')
    assert is_workspace_root(tmp_path) is False
    _root(tmp_path)
    assert is_workspace_root(tmp_path) is True


def test_mrel_toml_marks_root(tmp_path: Path) -> None:
    (tmp_path / "mrel.toml").write_text("")
    assert is_workspace_root(tmp_path) is True


def test_invalid_json_is_not_a_root(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{")
    assert is_workspace_root(tmp_path) is False


def test_find_upward(tmp_path: Path) -> None:
    root = _root(tmp_path / "repo")
    nested = root / "packages" / "a" / "src"
    nested.mkdir(parents=True)
    assert find_workspace_upward(nested) == root


def test_detect_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    root = _root(tmp_path / "repo")
    monkeypatch.setenv(WORKSPACE_ENV_VAR, str(root))
    result = detect_workspace()
    assert isinstance(result, Ok)
    assert result.value.root == root.resolve()
    assert result.value.config_path.name == "mrel.toml"


def test_detect_invalid_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(WORKSPACE_ENV_VAR, str(tmp_path))
    result = detect_workspace()
    assert isinstance(result, Err)
    assert WORKSPACE_ENV_VAR in result.error.message


def test_detect_not_found(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(WORKSPACE_ENV_VAR, raising=False)
    result = detect_workspace(start_dir=tmp_path)
    assert isinstance(result, Err)
    assert result.error.searched_from == tmp_path.resolve()
