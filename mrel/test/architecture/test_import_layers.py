"""Layering rules, checked on the import statements of the source tree."""

from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ImportRef:
    module: str
    line: int


def mrel_root() -> Path:
    return Path(__file__).resolve().parents[2]


def iter_source_files(base: Path) -> list[Path]:
    root = mrel_root()
    files: list[Path] = []
    for path in sorted(base.rglob("*.py")):
        rel = path.relative_to(root)
        if rel.parts[0] == "test" or "__pycache__" in rel.parts:
            continue
        files.append(path)
    return files


def parse_imports(path: Path) -> list[ImportRef]:
    tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    imports: list[ImportRef] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            imports.extend(ImportRef(alias.name, node.lineno) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and not node.level and node.module is not None:
            imports.append(ImportRef(node.module, node.lineno))
    return imports


def matches_prefix(module: str, prefix: str) -> bool:
    return module == prefix or module.startswith(prefix + ".")


def _offenders(base: Path, forbidden: tuple[str, ...], allow: frozenset[str] = frozenset()) -> list[str]:
    root = mrel_root()
    found: list[str] = []
    for file_path in iter_source_files(base):
        rel = file_path.relative_to(root).as_posix()
        if rel in allow:
            continue
        for item in parse_imports(file_path):
            if any(matches_prefix(item.module, prefix) for prefix in forbidden):
                found.append(f"{rel}:{item.line}: forbidden import '{item.module}'")
    return found


def test_release_does_not_import_cli() -> None:
    offenders = _offenders(mrel_root() / "release", ("mrel.cli", "typer"))
    assert not offenders, "release -> cli dependency violations:\n" + "\n".join(offenders)


def test_core_and_platform_stay_low() -> None:
    root = mrel_root()
    offenders = [
        *_offenders(root / "platform", ("mrel.cli", "mrel.release", "mrel.git")),
        *_offenders(root / "git", ("mrel.cli", "mrel.release")),
        *_offenders(root / "core", ("mrel.cli", "mrel.git", "mrel.release", "mrel.output")),
    ]
    assert not offenders, "layering violations:\n" + "\n".join(offenders)


def test_rich_is_confined_to_console() -> None:
    offenders = _offenders(mrel_root(), ("rich",), allow=frozenset({"output/console.py"}))
    assert not offenders, "Direct rich usage policy violations:\n" + "\n".join(offenders)


def test_only_platform_spawns_processes() -> None:
    offenders = _offenders(mrel_root(), ("subprocess",), allow=frozenset({"platform/process.py"}))
    assert not offenders, "subprocess usage outside platform/process.py:\n" + "\n".join(offenders)
