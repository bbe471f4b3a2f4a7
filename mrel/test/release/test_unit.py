from __future__ import annotations

from collections.abc import Callable

import pytest

from mrel.release.errors import ReleaseError
from mrel.release.semver import Version
from mrel.release.severity import Severity
from mrel.release.unit import Unit, UnitState

MakeUnit = Callable[..., Unit]


def test_own_severity_is_set_once(make_unit: MakeUnit) -> None:
    unit = make_unit("a")
    unit.set_own_severity(Severity.MINOR)
    assert unit.effective_severity is Severity.MINOR
    with pytest.raises(RuntimeError, match="already set"):
        unit.set_own_severity(Severity.MAJOR)


def test_effective_severity_only_rises(make_unit: MakeUnit) -> None:
    unit = make_unit("a")
    unit.raise_effective(Severity.MINOR)
    unit.raise_effective(Severity.PATCH)
    assert unit.effective_severity is Severity.MINOR


def test_mark_failed_sets_every_flag(make_unit: MakeUnit) -> None:
    unit = make_unit("a")
    unit.set_own_severity(Severity.PATCH)
    assert unit.releasing

    first = ReleaseError(kind="git_failed", message="first")
    unit.mark_failed(first)
    unit.mark_failed(ReleaseError(kind="collaborator_failed", message="second"))

    assert unit.error == first
    assert unit.state is UnitState.FAILED and unit.state.terminal
    assert unit.flags.ready and unit.flags.tagged and unit.flags.succeeded
    assert not unit.releasing


def test_view_versions(make_unit: MakeUnit) -> None:
    unit = make_unit("a", last="1.2.0")
    assert unit.view().carried_version == Version(1, 2, 0)
    unit.next_version = Version(1, 3, 0)
    view = unit.view()
    assert (view.name, view.last_version, view.next_version, view.failed) == (
        "a",
        Version(1, 2, 0),
        Version(1, 3, 0),
        False,
    )
    assert view.released_version == view.carried_version == Version(1, 3, 0)


def test_failed_view_carries_last_version(make_unit: MakeUnit) -> None:
    unit = make_unit("a", last="1.2.0")
    unit.next_version = Version(1, 3, 0)
    unit.mark_failed(ReleaseError(kind="collaborator_failed", message="boom"))
    view = unit.view()
    assert view.released_version is None
    assert view.carried_version == Version(1, 2, 0)
