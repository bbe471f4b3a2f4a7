from __future__ import annotations

import pytest

from mrel.release.semver import Version, highest, parse_range, parse_version, satisfies
from mrel.release.severity import Severity


def v(text: str) -> Version:
    parsed = parse_version(text)
    assert parsed is not None
    return parsed


class TestParseVersion:
    def test_plain(self) -> None:
        assert parse_version("1.2.3") == Version(1, 2, 3)

    def test_leading_v_and_build_metadata(self) -> None:
        assert parse_version("v1.2.3+build.7") == Version(1, 2, 3)

    def test_prerelease(self) -> None:
        version = v("1.2.3-beta.1")
        assert version.prerelease == ("beta", 1)
        assert version.channel == "beta"
        assert version.base == Version(1, 2, 3)
        assert str(version) == "1.2.3-beta.1"

    @pytest.mark.parametrize("text", ["1.2", "01.2.3", "1.2.3.4", "latest", ""])
    def test_invalid(self, text: str) -> None:
        assert parse_version(text) is None


def test_precedence() -> None:
    ordered = [
        "1.0.0-alpha",
        "1.0.0-alpha.1",
        "1.0.0-alpha.beta",
        "1.0.0-beta",
        "1.0.0-beta.2",
        "1.0.0-beta.11",
        "1.0.0-rc.1",
        "1.0.0",
        "1.0.1",
        "1.10.0",
        "2.0.0",
    ]
    versions = [v(t) for t in ordered]
    assert sorted(reversed(versions)) == versions
    assert highest(versions) == v("2.0.0")
    assert highest([]) is None


class TestBump:
    @pytest.mark.parametrize(
        ("start", "severity", "expected"),
        [
            ("1.2.3", Severity.PATCH, "1.2.4"),
            ("1.2.3", Severity.MINOR, "1.3.0"),
            ("1.2.3", Severity.MAJOR, "2.0.0"),
            ("1.2.3", Severity.NONE, "1.2.3"),
            ("1.0.0-beta.1", Severity.MAJOR, "1.0.0"),
            ("1.2.0-beta.1", Severity.MINOR, "1.2.0"),
            ("1.2.0-beta.1", Severity.MAJOR, "2.0.0"),
            ("1.2.3-beta.1", Severity.PATCH, "1.2.3"),
        ],
    )
    def test_bump(self, start: str, severity: Severity, expected: str) -> None:
        assert str(v(start).bump(severity)) == expected

    def test_bump_prerelease(self) -> None:
        assert str(v("1.0.0").bump_prerelease("beta")) == "1.0.1-beta.0"
        assert str(v("1.0.1-beta.1").bump_prerelease("beta")) == "1.0.1-beta.2"

    def test_bump_prerelease_other_channel_restarts(self) -> None:
        assert str(v("1.0.0-alpha.3").bump_prerelease("beta")) == "1.0.0-beta.0"


class TestSatisfies:
    @pytest.mark.parametrize(
        ("version", "range_text"),
        [
            ("1.2.0", "^1.0.0"),
            ("0.2.5", "^0.2.0"),
            ("1.0.9", "~1.0.0"),
            ("1.5.0", "1.x"),
            ("3.0.0", "*"),
            ("1.0.0", "1.0.0"),
            ("1.0.0", "=1.0.0"),
            ("1.2.0", ">= 1.0.0"),
            ("1.0.0", ">=1.0.0 <2.0.0"),
            ("2.5.9", "1.2.3 - 2.5"),
            ("3.1.0", "^1.0.0 || ^3.0.0"),
            ("1.0.0-beta.2", "^1.0.0-beta.1"),
        ],
    )
    def test_inside(self, version: str, range_text: str) -> None:
        assert satisfies(version, range_text)

    @pytest.mark.parametrize(
        ("version", "range_text"),
        [
            ("2.0.0", "^1.0.0"),
            ("0.3.0", "^0.2.0"),
            ("0.0.2", "^0.0.1"),
            ("1.1.0", "~1.0.0"),
            ("2.0.0", "1.x"),
            ("2.0.0", ">=1.0.0 <2.0.0"),
            ("2.6.0", "1.2.3 - 2.5"),
            ("2.0.0", "^1.0.0 || ^3.0.0"),
            ("1.0.0-beta.1", "^1.0.0"),
            ("1.1.0-beta.1", "^1.0.0"),
            ("1.0.0", "latest"),
            ("not-a-version", "*"),
        ],
    )
    def test_outside(self, version: str, range_text: str) -> None:
        assert not satisfies(version, range_text)

    def test_non_ranges_do_not_parse(self) -> None:
        assert parse_range("workspace:*") is None
        assert parse_range("file:../a") is None
        assert parse_range("^1.0.0") is not None
