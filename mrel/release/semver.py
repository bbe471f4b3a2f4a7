"""Semantic versions and npm-style version ranges.

Only the subset workspace manifests use in practice is supported: exact
versions, primitive comparators, caret and tilde ranges, x-ranges and ``*``,
hyphen ranges and ``||`` unions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Literal

from mrel.release.severity import Severity

PrereleaseId = str | int
Operator = Literal["<", "<=", ">", ">=", "="]

_VERSION_RE = re.compile(
    r"^[=v]*(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)
_PARTIAL_RE = re.compile(
    r"^(<=|>=|<|>|=|~>?|\^)?\s*v?"
    r"(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)
_HYPHEN_RE = re.compile(r"^\s*(\S+)\s+-\s+(\S+)\s*$")
_OPERATOR_GAP_RE = re.compile(r"(<=|>=|<|>|=|~>?|\^)\s+")


def _parse_prerelease(text: str | None) -> tuple[PrereleaseId, ...]:
    if not text:
        return ()
    return tuple(int(p) if p.isdigit() else p for p in text.split("."))


@total_ordering
@dataclass(frozen=True, slots=True)
class Version:
    major: int
    minor: int
    patch: int
    prerelease: tuple[PrereleaseId, ...] = ()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            return f"{base}-{'.'.join(str(p) for p in self.prerelease)}"
        return base

    @property
    def base(self) -> Version:
        return Version(self.major, self.minor, self.patch)

    @property
    def channel(self) -> str | None:
        """Leading prerelease identifier ("beta" for 1.0.0-beta.3)."""
        if not self.prerelease:
            return None
        return str(self.prerelease[0])

    def _key(self) -> tuple[object, ...]:
        # A release sorts above all of its prereleases; numeric ids sort below text ids.
        pre = tuple((0, p, "") if isinstance(p, int) else (1, 0, p) for p in self.prerelease)
        return (self.major, self.minor, self.patch, 0 if self.prerelease else 1, pre)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def bump(self, severity: Severity) -> Version:
        """Increment like ``semver.inc`` for major/minor/patch."""
        pre = bool(self.prerelease)
        match severity:
            case Severity.MAJOR:
                if pre and self.minor == 0 and self.patch == 0:
                    return self.base
                return Version(self.major + 1, 0, 0)
            case Severity.MINOR:
                if pre and self.patch == 0:
                    return self.base
                return Version(self.major, self.minor + 1, 0)
            case Severity.PATCH:
                if pre:
                    return self.base
                return Version(self.major, self.minor, self.patch + 1)
            case _:
                return self

    def bump_prerelease(self, channel: str) -> Version:
        """Next prerelease on ``channel`` (1.0.0 -> 1.0.1-beta.0, 1.0.1-beta.1 -> 1.0.1-beta.2)."""
        if not self.prerelease:
            return Version(self.major, self.minor, self.patch + 1, (channel, 0))

        ids = list(self.prerelease)
        for i in range(len(ids) - 1, -1, -1):
            current = ids[i]
            if isinstance(current, int):
                ids[i] = current + 1
                break
        else:
            ids.append(0)

        if ids[0] != channel or len(ids) < 2 or not isinstance(ids[1], int):
            ids = [channel, 0]
        return Version(self.major, self.minor, self.patch, tuple(ids))


def parse_version(text: str) -> Version | None:
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    return Version(int(m.group(1)), int(m.group(2)), int(m.group(3)), _parse_prerelease(m.group(4)))


# -----------------------------------------------------------------------------
# Ranges
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Comparator:
    op: Operator
    version: Version

    def test(self, v: Version) -> bool:
        match self.op:
            case "<":
                return v < self.version
            case "<=":
                return v <= self.version
            case ">":
                return v > self.version
            case ">=":
                return v >= self.version
            case "=":
                return v == self.version


ComparatorSet = tuple[Comparator, ...]


@dataclass(frozen=True, slots=True)
class Range:
    """A union (``||``) of comparator sets; an empty set matches any release."""

    alternatives: tuple[ComparatorSet, ...]

    def satisfied_by(self, v: Version) -> bool:
        return any(_test_set(cs, v) for cs in self.alternatives)


def _test_set(comparators: ComparatorSet, v: Version) -> bool:
    if not all(c.test(v) for c in comparators):
        return False
    if not v.prerelease:
        return True
    # Prereleases only match when a comparator opts in on the same major.minor.patch.
    return any(c.version.prerelease and c.version.base == v.base for c in comparators)


def _is_wild(part: str | None) -> bool:
    return part is None or part in ("x", "X", "*")


def _upper(major: int, minor: int = 0, patch: int = 0) -> Version:
    return Version(major, minor, patch, (0,))


def _desugar(token: str) -> list[Comparator] | None:
    m = _PARTIAL_RE.match(token)
    if m is None:
        return None
    op, smaj, smin, spat, spre = m.groups()
    op = "~" if op == "~>" else (op or "=")
    pre = _parse_prerelease(spre)

    if _is_wild(smaj):
        if op in ("<", ">"):
            return [Comparator("<", Version(0, 0, 0, (0,)))]
        return []

    major = int(smaj)
    if _is_wild(smin):
        low = Version(major, 0, 0)
        match op:
            case "=" | "~" | "^":
                return [Comparator(">=", low), Comparator("<", _upper(major + 1))]
            case ">":
                return [Comparator(">=", Version(major + 1, 0, 0))]
            case ">=":
                return [Comparator(">=", low)]
            case "<":
                return [Comparator("<", _upper(major))]
            case "<=":
                return [Comparator("<", _upper(major + 1))]
        return None

    minor = int(smin)
    if _is_wild(spat):
        low = Version(major, minor, 0)
        match op:
            case "=" | "~":
                return [Comparator(">=", low), Comparator("<", _upper(major, minor + 1))]
            case "^":
                hi = _upper(major + 1) if major > 0 else _upper(0, minor + 1)
                return [Comparator(">=", low), Comparator("<", hi)]
            case ">":
                return [Comparator(">=", Version(major, minor + 1, 0))]
            case ">=":
                return [Comparator(">=", low)]
            case "<":
                return [Comparator("<", _upper(major, minor))]
            case "<=":
                return [Comparator("<", _upper(major, minor + 1))]
        return None

    v = Version(major, minor, int(spat), pre)
    match op:
        case "~":
            return [Comparator(">=", v), Comparator("<", _upper(major, minor + 1))]
        case "^":
            if major > 0:
                hi = _upper(major + 1)
            elif minor > 0:
                hi = _upper(0, minor + 1)
            else:
                hi = _upper(0, 0, v.patch + 1)
            return [Comparator(">=", v), Comparator("<", hi)]
        case "<" | "<=" | ">" | ">=" | "=":
            return [Comparator(op, v)]
    return None


def _hyphen(low: str, high: str) -> list[Comparator] | None:
    lo = _desugar(">=" + low)
    if lo is None:
        return None
    m = _PARTIAL_RE.match(high)
    if m is None or m.group(1):
        return None
    _, smaj, smin, spat, spre = m.groups()
    if _is_wild(smaj):
        return lo
    if _is_wild(smin):
        return lo + [Comparator("<", _upper(int(smaj) + 1))]
    if _is_wild(spat):
        return lo + [Comparator("<", _upper(int(smaj), int(smin) + 1))]
    return lo + [Comparator("<=", Version(int(smaj), int(smin), int(spat), _parse_prerelease(spre)))]


def parse_range(text: str) -> Range | None:
    """Parse an npm-style range; None when it is not a version range (tags, URLs, paths)."""
    alternatives: list[ComparatorSet] = []
    for raw in text.split("||"):
        part = raw.strip()
        hyphen = _HYPHEN_RE.match(part)
        if hyphen is not None:
            comparators = _hyphen(hyphen.group(1), hyphen.group(2))
            if comparators is None:
                return None
            alternatives.append(tuple(comparators))
            continue

        collected: list[Comparator] = []
        for token in _OPERATOR_GAP_RE.sub(r"\1", part).split():
            desugared = _desugar(token)
            if desugared is None:
                return None
            collected.extend(desugared)
        alternatives.append(tuple(collected))
    return Range(tuple(alternatives))


def satisfies(version: str | Version, range_text: str) -> bool:
    """True if ``version`` is inside the npm-style range ``range_text``."""
    v = parse_version(version) if isinstance(version, str) else version
    if v is None:
        return False
    r = parse_range(range_text)
    if r is None:
        return False
    return r.satisfied_by(v)


def highest(versions: list[Version]) -> Version | None:
    return max(versions) if versions else None
