"""Interactive read-eval-print loop: slash-commands and chat turns."""

import logging
import sys
from pathlib import Path

from .commands import CommandRegistry, register_builtin_commands
from .errors import HzmindError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Line input
# ---------------------------------------------------------------------------


class TerminalReader:
    """prompt_toolkit input with persistent history and hidden password entry."""

    def __init__(self, history_path: Path | None = None):
        from prompt_toolkit import PromptSession
        from prompt_toolkit.history import FileHistory, InMemoryHistory

        if history_path is not None:
            history_path = Path(history_path)
            history_path.parent.mkdir(parents=True, exist_ok=True)
            history = FileHistory(str(history_path))
        else:
            history = InMemoryHistory()
        self._session = PromptSession(history=history, enable_history_search=True)

    def read_line(self, prompt: str = "") -> str:
        from prompt_toolkit.formatted_text import FormattedText

        return self._session.prompt(FormattedText([("bold fg:ansigreen", prompt)]))

    def read_password(self, prompt: str = "") -> str:
        from prompt_toolkit import prompt as pt_prompt

        return pt_prompt(prompt, is_password=True)


class StreamReader:
    """Line input from a file-like object (piped stdin, tests).

    Raises EOFError once the stream is exhausted.
    """

    def __init__(self, stream=None, echo=None):
        self.stream = stream if stream is not None else sys.stdin
        self.echo = echo

    def read_line(self, prompt: str = "") -> str:
        if self.echo is not None and prompt:
            self.echo.write(prompt)
            self.echo.flush()
        line = self.stream.readline()
        if not line:
            raise EOFError
        return line.rstrip("\r\n")

    def read_password(self, prompt: str = "") -> str:
        return self.read_line(prompt)


# ---------------------------------------------------------------------------
# REPL
# ---------------------------------------------------------------------------


class Repl:
    """Runs until /exit. Owns the command registry; the account store and
    conversation session are passed in and shared with the command handlers."""

    PROMPT = "> "

    def __init__(
        self,
        *,
        accounts,
        session,
        client,
        project,
        output,
        reader,
        version: str = "unknown",
        log_handler: logging.Handler | None = None,
    ):
        self.accounts = accounts
        self.session = session
        self.client = client
        self.project = project
        self.output = output
        self.reader = reader
        self.version = version
        self.log_handler = log_handler
        self.running = False
        self.registry = CommandRegistry()
        register_builtin_commands(self.registry, self)

    def _status_warnings(self) -> None:
        if not self.accounts.current_account_name:
            self.output.warning("no account (use /acc new or /acc login <name>)")
        if not self.project.ignore_file_exists():
            self.output.warning(f"no {self.project.paths.ignore} file (run /init)")

    def greet(self) -> None:
        self.output.banner(self.version)
        if self.accounts.current_account_name:
            self.output.success(f"Logged in to {self.accounts.current_account_name}")
            logger.info("logged in to %r", self.accounts.current_account_name)

    def handle_line(self, line: str) -> None:
        """Classify one input line and run it; errors are printed, never raised."""
        line = line.strip()
        if not line:
            return

        if line.startswith("/") and len(line) > 1:
            name, *rest = line[1:].split(None, 1)
            arg = rest[0].strip() if rest else ""
            try:
                self.registry.dispatch(name.lower(), arg)
            except HzmindError as e:
                self.output.error(str(e))
                logger.error("%s", e)
            except KeyboardInterrupt:
                self.output.warning("interrupted, command aborted.")
                logger.warning("command /%s interrupted", name)
            except EOFError:
                # Input ended while a command was prompting.
                self.output.print()
                logger.warning("end of input during /%s", name)
                self.registry.dispatch("exit")
            return

        try:
            reply = self.session.handle_user_turn(line)
        except KeyboardInterrupt:
            self.output.warning("interrupted, question aborted.")
            return
        except HzmindError as e:
            self.output.error(str(e))
            logger.error("%s", e)
            return
        self.output.print()
        self.output.print(reply)

    def run(self) -> None:
        self.running = True
        logger.info("REPL started")
        try:
            while self.running:
                self.output.print()
                self._status_warnings()
                try:
                    line = self.reader.read_line(self.PROMPT)
                except KeyboardInterrupt:
                    continue
                except EOFError:
                    self.output.print()
                    self.handle_line("/exit")
                    continue
                self.output.echo_input(line)
                self.handle_line(line)
        finally:
            self.close()

    def close(self) -> None:
        """Release output and log resources. The config file needs no flush: every
        account change was written before its command returned."""
        logger.info("graceful cleanup")
        self.running = False
        self.output.close()
        if self.log_handler is not None:
            logging.getLogger("hzmind").removeHandler(self.log_handler)
            self.log_handler.close()
            self.log_handler = None
