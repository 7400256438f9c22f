"""Tests for playpub.output.console module."""

from __future__ import annotations

import pytest

from playpub.output.console import (
    ConsoleProtocol,
    MockConsole,
    OutputRecord,
    RichConsole,
    Style,
)


class TestStyle:
    def test_str_conversion(self) -> None:
        assert str(Style.SUCCESS) == "success"
        assert str(Style.DIM) == "dim"

    def test_all_styles_exist(self) -> None:
        expected = {"DEFAULT", "SUCCESS", "ERROR", "WARNING", "INFO", "DIM", "HEADER"}
        assert {s.name for s in Style} == expected


class TestMockConsole:
    def test_print_captures_message(self) -> None:
        console = MockConsole()
        console.print("hello")
        assert console.outputs == [OutputRecord("hello", Style.DEFAULT)]

    def test_prefixed_helpers(self) -> None:
        console = MockConsole()
        console.success("done")
        console.error("failed")
        console.warning("careful")
        console.info("fyi")
        assert console.messages == ["OK done", "error: failed", "warning: careful", "info: fyi"]
        assert console.has_error()

    def test_header_and_newline(self) -> None:
        console = MockConsole()
        console.header("Authenticating")
        console.newline()
        assert console.outputs[0].style == Style.HEADER
        assert console.outputs[1].message == ""

    def test_find_and_count(self) -> None:
        console = MockConsole()
        console.info("one")
        console.info("two")
        console.print("three")
        assert len(console.find("t")) == 2
        assert console.count(Style.INFO) == 2
        assert console.text == "info: one\ninfo: two\nthree"

    def test_implements_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.print("x")


class TestRichConsole:
    def test_markup_is_escaped(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.print("[bold]not markup[/bold]")
        console.error("file [1].apk")
        out = capsys.readouterr().out
        assert "[bold]not markup[/bold]" in out
        assert "error: file [1].apk" in out

    def test_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole(stderr=True).warning("to stderr")
        captured = capsys.readouterr()
        assert "warning: to stderr" in captured.err
        assert captured.out == ""
