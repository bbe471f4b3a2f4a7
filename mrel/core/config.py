"""Typed run configuration.

``mrel.toml`` at the workspace root is optional. It is parsed once, validated
into frozen dataclasses, and CLI flags are applied on top with
``Config.with_overrides``. Nothing downstream reads untyped option dicts.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal, cast

from mrel.core.result import Err, Ok, Result
from mrel.core.structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_raw_str,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "BumpStrategy",
    "Config",
    "ConfigError",
    "DependentReleaseRule",
    "DepsPolicy",
    "ReleaseOptions",
    "VersionPrefix",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILE_NAME = "mrel.toml"
DEFAULT_TAG_FORMAT = "{name}@{version}"

BumpStrategy = Literal["override", "satisfy", "inherit"]
VersionPrefix = Literal["^", "~", ""]
DependentReleaseRule = Literal["patch", "minor", "major", "inherit"]

BUMP_STRATEGIES: tuple[BumpStrategy, ...] = ("override", "satisfy", "inherit")
VERSION_PREFIXES: tuple[VersionPrefix, ...] = ("^", "~", "")
DEPENDENT_RELEASE_RULES: tuple[DependentReleaseRule, ...] = ("patch", "minor", "major", "inherit")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class DepsPolicy:
    """How dependents react when a workspace dependency changes.

    Attributes:
        bump: Constraint update strategy (override | satisfy | inherit).
        prefix: Prefix attached to the new version under ``override``.
        release: Severity forced on a dependent whose dependency was updated,
            or ``inherit`` to take the highest severity among those dependencies.
    """

    bump: BumpStrategy = "inherit"
    prefix: VersionPrefix = "^"
    release: DependentReleaseRule = "patch"

    @classmethod
    def from_dict(cls, data: Mapping[str, object], base: DepsPolicy | None = None) -> DepsPolicy:
        base = base or cls()
        bump = get_str(data, "bump") or base.bump
        prefix = get_raw_str(data, "prefix")
        release = get_str(data, "release") or base.release
        if prefix is None:
            prefix = base.prefix

        if bump not in BUMP_STRATEGIES:
            raise ValueError(f"deps.bump must be one of {', '.join(BUMP_STRATEGIES)}: {bump!r}")
        if prefix not in VERSION_PREFIXES:
            raise ValueError(f"deps.prefix must be one of '^', '~' or '': {prefix!r}")
        if release not in DEPENDENT_RELEASE_RULES:
            raise ValueError(
                f"deps.release must be one of {', '.join(DEPENDENT_RELEASE_RULES)}: {release!r}"
            )
        return cls(
            bump=cast(BumpStrategy, bump),
            prefix=cast(VersionPrefix, prefix),
            release=cast(DependentReleaseRule, release),
        )


@dataclass(frozen=True, slots=True)
class ReleaseOptions:
    """Run-level switches.

    ``sequential`` serializes the start of every unit (avoids registry/API
    rate limits); ``first_parent`` restricts commit history to the branch's
    first-parent chain; ``prerelease`` names a prerelease channel;
    ``pkg_roots`` are directories, relative to each unit, holding extra
    package.json files (publish roots) whose dependency constraints are
    rewritten along with the unit's own.
    """

    branch: str = "main"
    tag_format: str = DEFAULT_TAG_FORMAT
    prerelease: str | None = None
    sequential: bool = False
    first_parent: bool = False
    dry_run: bool = False
    push: bool = False
    ignore_packages: tuple[str, ...] = ()
    ignore_private_packages: bool = False
    pkg_roots: tuple[str, ...] = ()

    def tag_for(self, name: str, version: str) -> str:
        return self.tag_format.format(name=name, version=version)


def _empty_policies() -> dict[str, DepsPolicy]:
    return {}


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    release: ReleaseOptions = field(default_factory=ReleaseOptions)
    deps: DepsPolicy = field(default_factory=DepsPolicy)
    unit_deps: dict[str, DepsPolicy] = field(default_factory=_empty_policies)

    def policy_for(self, unit_name: str) -> DepsPolicy:
        return self.unit_deps.get(unit_name, self.deps)

    def with_overrides(
        self,
        *,
        deps: Mapping[str, object] | None = None,
        **release: object,
    ) -> Config:
        """Apply CLI overrides; ``None`` values mean "flag not given"."""
        changes = {k: v for k, v in release.items() if v is not None}
        if "ignore_packages" in changes:
            changes["ignore_packages"] = tuple(cast(list[str], changes["ignore_packages"]))
        new_release = replace(self.release, **changes) if changes else self.release
        if not deps:
            return replace(self, release=new_release)

        clean = {k: v for k, v in deps.items() if v is not None}
        new_deps = DepsPolicy.from_dict(clean, base=self.deps)
        new_units = {
            name: DepsPolicy.from_dict(clean, base=policy) for name, policy in self.unit_deps.items()
        }
        return Config(release=new_release, deps=new_deps, unit_deps=new_units)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a parsed mrel.toml mapping."""
        release: StrDict = get_table(data, "release") or {}
        deps_table: StrDict = get_table(data, "deps") or {}
        units: StrDict = get_table(data, "units") or {}

        ignore = get_str_list(release, "ignore_packages")
        if "ignore_packages" in release and ignore is None:
            raise ValueError("release.ignore_packages must be a list of strings")

        pkg_roots = get_str_list(release, "pkg_roots")
        if "pkg_roots" in release and pkg_roots is None:
            raise ValueError("release.pkg_roots must be a list of strings")

        tag_format = get_str(release, "tag_format") or DEFAULT_TAG_FORMAT
        if "{version}" not in tag_format:
            raise ValueError(f"release.tag_format must contain {{version}}: {tag_format!r}")

        deps = DepsPolicy.from_dict(deps_table)
        unit_deps: dict[str, DepsPolicy] = {}
        for name, raw in units.items():
            unit_table = as_str_dict(raw) or {}
            override = get_table(unit_table, "deps")
            if override is not None:
                unit_deps[name] = DepsPolicy.from_dict(override, base=deps)

        return cls(
            release=ReleaseOptions(
                branch=get_str(release, "branch") or "main",
                tag_format=tag_format,
                prerelease=get_str(release, "prerelease"),
                sequential=bool(get_bool(release, "sequential")),
                first_parent=bool(get_bool(release, "first_parent")),
                dry_run=bool(get_bool(release, "dry_run")),
                push=bool(get_bool(release, "push")),
                ignore_packages=tuple(ignore or ()),
                ignore_private_packages=bool(get_bool(release, "ignore_private_packages")),
                pkg_roots=tuple(dict.fromkeys(pkg_roots or ())),
            ),
            deps=deps,
            unit_deps=unit_deps,
        )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and validate mrel.toml.

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config: {e}", path=path))


def load_config_or_default(root: Path) -> Result[Config, ConfigError]:
    """Load ``<root>/mrel.toml`` if present, else the default config.

    Unlike a missing file, a malformed file is still an error.
    """
    path = root / CONFIG_FILE_NAME
    if not path.exists():
        return Ok(Config())
    return load_config(path)
