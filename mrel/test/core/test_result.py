"""Tests for mrel.core.result module."""

import pytest

from mrel.core.result import Err, Ok, Result


class TestOk:
    def test_ok_holds_value(self) -> None:
        assert Ok(42).value == 42

    def test_ok_map(self) -> None:
        """Ok.map() transforms the value."""
        assert Ok(2).map(lambda x: x * 10) == Ok(20)

    def test_ok_is_frozen(self) -> None:
        with pytest.raises(AttributeError):
            Ok(1).value = 2  # type: ignore[misc]


class TestErr:
    def test_err_holds_error(self) -> None:
        assert Err("boom").error == "boom"

    def test_err_map_is_noop(self) -> None:
        result = Err("boom")
        assert result.map(lambda x: x + 1) is result


def test_pattern_matching() -> None:
    results: list[Result[int, str]] = [Ok(5), Err("x")]
    seen: list[str] = []
    for result in results:
        match result:
            case Ok(value):
                seen.append(f"ok {value}")
            case Err(error):
                seen.append(f"err {error}")
    assert seen == ["ok 5", "err x"]
