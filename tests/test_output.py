"""Tests for hzmind.output: console messages and the transcript file."""

import re
from io import StringIO

from rich.console import Console

from hzmind.output import Output, make_console, transcript_path


def _output(transcript=None):
    buf = StringIO()
    return Output(Console(file=buf, no_color=True, width=120), transcript=transcript), buf


class TestMessages:
    def test_prefixes(self):
        out, buf = _output()
        out.warning("careful")
        out.error("broken")
        text = buf.getvalue()
        assert "Warning: careful" in text
        assert "Error: broken" in text

    def test_markup_not_interpreted(self):
        out, buf = _output()
        out.print("[bold]literal[/bold]")
        assert "[bold]literal[/bold]" in buf.getvalue()

    def test_command_output_skips_empty(self):
        out, buf = _output()
        out.command_output("")
        assert buf.getvalue() == ""

    def test_command_output_strips_trailing_newline(self):
        out, buf = _output()
        out.command_output("a\nb\n", failed=True)
        assert buf.getvalue() == "a\nb\n"

    def test_banner(self):
        out, buf = _output()
        out.banner("1.0")
        assert "Welcome to HarzMind Code v1.0" in buf.getvalue()
        assert "/help" in buf.getvalue()

    def test_echo_input_not_on_console(self):
        out, buf = _output()
        out.echo_input("hello")
        assert buf.getvalue() == ""


class TestTranscript:
    def test_writes_plain_text(self, tmp_path):
        path = tmp_path / "out" / "session.md"
        out, _ = _output(transcript=path)
        out.echo_input("question")
        out.success("done")
        out.error("bad")
        out.close()
        text = path.read_text(encoding="utf-8")
        assert "> question" in text
        assert "done" in text
        assert "Error: bad" in text
        assert "\x1b[" not in text

    def test_close_is_idempotent(self, tmp_path):
        out, _ = _output(transcript=tmp_path / "t.md")
        out.close()
        out.close()
        assert out.closed

    def test_transcript_path_format(self, tmp_path):
        path = transcript_path(tmp_path)
        assert path.parent == tmp_path
        assert re.fullmatch(r"hzmind_\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}\.md", path.name)


class TestMakeConsole:
    def test_no_color(self):
        assert make_console(no_color=True).no_color

    def test_force_color(self):
        assert make_console(color=True).is_terminal
