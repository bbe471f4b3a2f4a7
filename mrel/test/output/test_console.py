"""Tests for mrel.output.console module."""

from __future__ import annotations

import pytest

from mrel.output.console import ConsoleProtocol, MockConsole, RichConsole, ScopedConsole, Style


class TestStyle:
    def test_str_conversion(self) -> None:
        assert str(Style.SUCCESS) == "success"
        assert str(Style.HEADER) == "header"

    def test_all_styles_exist(self) -> None:
        expected = {"DEFAULT", "SUCCESS", "ERROR", "WARNING", "INFO", "DIM", "BOLD", "HEADER"}
        assert {s.name for s in Style} == expected


class TestMockConsole:
    def test_records_styles(self) -> None:
        console = MockConsole()
        console.print("plain")
        console.success("ok")
        console.error("bad")
        console.warning("careful")
        console.info("fyi")
        console.header("Summary")
        console.newline()
        assert [o.style for o in console.outputs] == [
            Style.DEFAULT,
            Style.SUCCESS,
            Style.ERROR,
            Style.WARNING,
            Style.INFO,
            Style.HEADER,
            Style.DEFAULT,
        ]
        assert console.text == "plain\nok\nbad\ncareful\nfyi\nSummary\n"
        assert console.has_error()

    def test_find(self) -> None:
        console = MockConsole()
        console.print("a@1.0.1 (git tag)")
        console.print("b@2.0.0 (git tag)")
        assert [o.message for o in console.find("a@")] == ["a@1.0.1 (git tag)"]
        assert console.find("c@") == []


class TestScopedConsole:
    def test_prefixes_every_message(self) -> None:
        inner = MockConsole()
        scoped = ScopedConsole(inner, "@scope/pkg")
        scoped.info("analyzing")
        scoped.error("failed")
        scoped.print("## notes", Style.DIM)
        assert inner.messages == ["[@scope/pkg] analyzing", "[@scope/pkg] failed", "[@scope/pkg] ## notes"]
        assert inner.outputs[2].style == Style.DIM

    def test_header_and_newline_pass_through(self) -> None:
        inner = MockConsole()
        scoped = ScopedConsole(inner, "pkg")
        scoped.header("Released")
        scoped.newline()
        assert inner.outputs[0].style == Style.HEADER
        assert inner.outputs[0].message.endswith("Released")
        assert inner.outputs[1].message == ""


class TestRichConsole:
    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = RichConsole()
        assert console is not None

    def test_brackets_are_not_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.print("[a] released [bold]x[/bold]")
        assert "[a] released [bold]x[/bold]" in capsys.readouterr().out
