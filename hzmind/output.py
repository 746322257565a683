"""Terminal output using Rich, with an optional plain-text transcript file."""

from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.text import Text


def make_console(*, color: bool = False, no_color: bool = False) -> Console:
    """Build the terminal console from the --color / --no-color flags."""
    kwargs: dict = {"highlight": False}
    if color:
        kwargs["force_terminal"] = True
        kwargs["no_color"] = False
    if no_color:
        kwargs["no_color"] = True
    return Console(**kwargs)


def transcript_path(out_dir: Path) -> Path:
    stamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    return Path(out_dir) / f"hzmind_{stamp}.md"


class Output:
    """Everything the REPL prints goes through here.

    With a transcript path, each line is also written uncolored to that file.
    """

    def __init__(self, console: Console | None = None, transcript: Path | None = None):
        self.console = console or Console(highlight=False)
        self._transcript_file = None
        self._transcript: Console | None = None
        if transcript is not None:
            transcript = Path(transcript)
            transcript.parent.mkdir(parents=True, exist_ok=True)
            self._transcript_file = transcript.open("a", encoding="utf-8")
            self._transcript = Console(
                file=self._transcript_file,
                no_color=True,
                highlight=False,
                width=120,
            )
        self.closed = False

    def _emit(self, renderable="") -> None:
        self.console.print(renderable)
        if self._transcript is not None:
            self._transcript.print(renderable)

    def print(self, text: str = "") -> None:
        self._emit(Text(text))

    def echo_input(self, line: str) -> None:
        """Record what the user typed; only the transcript needs it."""
        if self._transcript is not None:
            self._transcript.print(Text(f"> {line}"))

    def success(self, msg: str) -> None:
        self._emit(Text(msg, style="green"))

    def info(self, msg: str) -> None:
        self._emit(Text(msg, style="dim"))

    def warning(self, msg: str) -> None:
        line = Text()
        line.append("Warning: ", style="bold yellow")
        line.append(msg, style="yellow")
        self._emit(line)

    def error(self, msg: str) -> None:
        line = Text()
        line.append("Error: ", style="bold red")
        line.append(msg, style="red")
        self._emit(line)

    def command_output(self, text: str, *, failed: bool = False) -> None:
        """Print captured subprocess output, red when the command failed."""
        if not text:
            return
        self._emit(Text(text.rstrip("\n"), style="red" if failed else ""))

    def status(self, label: str):
        """Return a Rich Status context manager (spinner) for a blocking call."""
        return self.console.status(f" {label}", spinner="dots")

    def banner(self, version: str) -> None:
        title = Text()
        title.append("\nWelcome to ")
        title.append("HarzMind Code", style="bold green")
        title.append(f" v{version}\n")
        self._emit(title)
        hint = Text()
        hint.append("Type ")
        hint.append("/help", style="bold")
        hint.append(" to list all commands, ")
        hint.append("/exit", style="bold")
        hint.append(" to quit.")
        self._emit(hint)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._transcript_file is not None:
            self._transcript_file.close()
            self._transcript_file = None
            self._transcript = None
