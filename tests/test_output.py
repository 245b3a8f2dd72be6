"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- Server console and channel output
- JSON and plain formats, tables
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from atelier_client import output as output_module
from atelier_client.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


# ------------------------------------------------------------------ #
# Fixtures
# ------------------------------------------------------------------ #


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("atelier_client.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("atelier_client.output._is_tty", lambda: True)


# ------------------------------------------------------------------ #
# Format resolution and colour
# ------------------------------------------------------------------ #


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager().format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager().format == OutputFormat.RICH

    def test_auto_plain_when_no_color(self, tty):
        assert OutputManager(no_color=True).format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColorDisabling:
    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color()

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color()

    def test_normal_term(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert not _should_disable_color()


# ------------------------------------------------------------------ #
# Stream discipline
# ------------------------------------------------------------------ #


class TestStreams:
    def test_data_on_stdout(self, capsys, non_tty):
        OutputManager(no_color=True).print_data("payload")
        captured = capsys.readouterr()
        assert captured.out == "payload\n"
        assert captured.err == ""

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_on_stderr(self, capsys, non_tty, method):
        getattr(OutputManager(no_color=True), method)("message")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "message" in captured.err

    def test_prefixes(self, capsys, non_tty):
        mgr = OutputManager(no_color=True)
        mgr.warning("careful")
        mgr.error("broken")
        err = capsys.readouterr().err
        assert "Warning: careful" in err
        assert "Error: broken" in err


class TestQuietAndVerbose:
    def test_quiet_suppresses_info_and_success(self, capsys, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.info("info")
        mgr.success("done")
        assert capsys.readouterr().err == ""

    def test_quiet_keeps_warnings_and_errors(self, capsys, non_tty):
        mgr = OutputManager(no_color=True, quiet=True)
        mgr.warning("w")
        mgr.error("e")
        err = capsys.readouterr().err
        assert "w" in err and "e" in err

    def test_debug_only_when_verbose(self, capsys, non_tty):
        OutputManager(no_color=True).debug("hidden")
        OutputManager(no_color=True, verbose=True).debug("shown")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "[debug] shown" in err


class TestServerOutput:
    def test_console_lines(self, capsys, non_tty):
        OutputManager(no_color=True).console_lines(["Compiling A.cls", "Done"])
        assert capsys.readouterr().err == "Compiling A.cls\nDone\n"

    def test_console_lines_quiet(self, capsys, non_tty):
        OutputManager(no_color=True, quiet=True).console_lines(["noise"])
        assert capsys.readouterr().err == ""

    def test_console_lines_keep_brackets(self, capsys, non_tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        OutputManager().console_lines(["[bold]literal[/bold]"])
        assert "[bold]literal[/bold]" in capsys.readouterr().err

    def test_channel_line_never_suppressed(self, capsys, non_tty):
        OutputManager(no_color=True, quiet=True).channel_line("Compilation failed")
        assert "Compilation failed" in capsys.readouterr().err

    def test_channel_line_keeps_brackets(self, capsys, non_tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        OutputManager().channel_line("ERROR #5002: <UNDEFINED>x+1^Foo [/tmp]")
        assert "<UNDEFINED>x+1^Foo [/tmp]" in capsys.readouterr().err

    @pytest.mark.parametrize("method", ["info", "success", "warning", "error", "suggest"])
    def test_diagnostics_keep_brackets(self, capsys, non_tty, monkeypatch, method):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        getattr(OutputManager(), method)("cannot open [/tmp] or [bold]x")
        assert "[/tmp] or [bold]x" in capsys.readouterr().err

    def test_debug_keeps_brackets(self, capsys, non_tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        OutputManager(verbose=True).debug("GET /api/atelier/[/x]")
        err = capsys.readouterr().err
        assert "[debug]" in err
        assert "/api/atelier/[/x]" in err


# ------------------------------------------------------------------ #
# Formats
# ------------------------------------------------------------------ #


class TestJsonFormat:
    def test_dict(self, capsys, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response({"api": 6})
        assert json.loads(capsys.readouterr().out) == {"api": 6}

    def test_bytes_decoded(self, capsys, non_tty):
        OutputManager(format=OutputFormat.JSON).format_response(b"raw")
        assert capsys.readouterr().out == "raw\n"

    def test_table(self, capsys, non_tty):
        OutputManager(format=OutputFormat.JSON).print_table(
            ["Field", "Value"], [["api", "6"]]
        )
        assert json.loads(capsys.readouterr().out) == [{"Field": "api", "Value": "6"}]


class TestPlainFormat:
    def test_dict_as_key_value(self, capsys, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response({"a": 1, "b": "x"})
        assert capsys.readouterr().out == "a\t1\nb\tx\n"

    def test_list_of_dicts(self, capsys, non_tty):
        OutputManager(format=OutputFormat.PLAIN).format_response(
            [{"name": "A.cls", "cat": "CLS"}, {"name": "B.mac", "cat": "RTN"}]
        )
        assert capsys.readouterr().out == "A.cls\tCLS\nB.mac\tRTN\n"

    def test_table(self, capsys, non_tty):
        OutputManager(format=OutputFormat.PLAIN).print_table(["h1", "h2"], [["a", "b"]])
        assert capsys.readouterr().out == "h1\th2\na\tb\n"


class TestRichFormat:
    def test_dict_produces_output(self, capsys, non_tty):
        OutputManager(format=OutputFormat.RICH).format_response({"api": 6})
        assert "api" in capsys.readouterr().out


# ------------------------------------------------------------------ #
# Global instance
# ------------------------------------------------------------------ #


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        assert isinstance(get_output(), OutputManager)

    def test_set_then_reset(self):
        mgr = OutputManager(quiet=True)
        set_output(mgr)
        assert get_output() is mgr
        reset_output()
        assert get_output() is not mgr

    def test_convenience_functions_use_global(self, capsys, non_tty):
        set_output(OutputManager(no_color=True))
        output_module.channel_line("status line")
        output_module.console_lines(["console"])
        err = capsys.readouterr().err
        assert "status line" in err
        assert "console" in err
