from __future__ import annotations

from mrel.core.errors import ErrorCode


def test_exit_codes_are_stable() -> None:
    assert int(ErrorCode.OK) == 0
    assert int(ErrorCode.USER_ERROR) == 1
    assert int(ErrorCode.CONFIG_ERROR) == 2
    assert int(ErrorCode.RELEASE_ERROR) == 3


def test_str_and_success() -> None:
    assert str(ErrorCode.RELEASE_ERROR) == "release error"
    assert ErrorCode.OK.is_success is True
    assert ErrorCode.CONFIG_ERROR.is_success is False
