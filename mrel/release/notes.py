from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import date

from mrel.git.repository import Commit
from mrel.release.commits import SECTION_TITLES, ParsedCommit, parse_commit
from mrel.release.unit import Release, Unit

_VERSION_HEADING_RE = re.compile(r"^(#+) (\[?\d+\.\d+\.\d+\]?)", re.MULTILINE)


def inject_unit_name(notes: str, name: str) -> str:
    """Turn the first ``## 1.2.0`` / ``## [1.2.0]`` heading into ``## name 1.2.0``."""
    return _VERSION_HEADING_RE.sub(lambda m: f"{m.group(1)} {name} {m.group(2)}", notes, count=1)


def dependencies_section(unit: Unit) -> str | None:
    """Upgraded dependencies that will actually ship; failed ones are left out."""
    views = [d.view() for d in unit.changed_deps]
    bullets = [f"* **{v.name}:** upgraded to {v.released_version}" for v in views if v.released_version is not None]
    if not bullets:
        return None
    return "### Dependencies\n\n" + "\n".join(bullets)


def _section_key(parsed: ParsedCommit) -> str | None:
    if parsed.breaking:
        return "breaking"
    if parsed.type in SECTION_TITLES:
        return parsed.type
    return None


def render_commit_notes(version: str, commits: Sequence[Commit], *, today: date | None = None) -> str:
    """Markdown notes for one release, grouped by commit type."""
    day = (today or date.today()).isoformat()
    lines = [f"## {version} ({day})"]

    grouped: dict[str, list[ParsedCommit]] = {}
    for commit in commits:
        parsed = parse_commit(commit)
        key = _section_key(parsed)
        if key is not None:
            grouped.setdefault(key, []).append(parsed)

    for key, title in SECTION_TITLES.items():
        entries = grouped.get(key)
        if not entries:
            continue
        lines.append("")
        lines.append(f"### {title}")
        lines.append("")
        for p in entries:
            scope = f"**{p.scope}:** " if p.scope else ""
            lines.append(f"* {scope}{p.subject} ({p.commit.short_sha})")

    return "\n".join(lines) + "\n"


def compose_notes(unit: Unit, plugin_notes: str | None) -> str:
    """Final notes of ``unit``: plugin notes with the unit name, then upgraded dependencies."""
    parts: list[str] = []
    if plugin_notes and plugin_notes.strip():
        parts.append(inject_unit_name(plugin_notes.strip(), unit.name))
    deps = dependencies_section(unit)
    if deps is not None:
        parts.append(deps)
    return "\n\n".join(parts)


def render_summary(releases: Sequence[Release]) -> list[str]:
    """One line per release, grouped by git tag, units sorted by name."""
    by_tag: dict[str, list[Release]] = {}
    for r in sorted(releases, key=lambda r: (r.unit, r.name)):
        by_tag.setdefault(r.git_tag, []).append(r)

    lines: list[str] = []
    for tag, items in by_tag.items():
        targets = ", ".join(f"{r.name}: {r.url}" if r.url else r.name for r in items)
        lines.append(f"{tag} ({targets})")
    return lines
