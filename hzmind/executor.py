"""Running shell commands and external editors for /bash and /editor."""

import logging
import shutil
import subprocess

from .errors import ExecutionError, ValidationError

logger = logging.getLogger(__name__)


def run_bash(command: str, cwd: str | None = None) -> tuple[str, int]:
    """Run *command* with ``bash -c`` and return (combined stdout+stderr, exit code)."""
    if not command.strip():
        raise ValidationError("usage: /bash <command>")
    bash = shutil.which("bash")
    if bash is None:
        raise ExecutionError("bash not found on PATH")
    logger.info("running bash command: %s", command)
    try:
        proc = subprocess.run(
            [bash, "-c", command],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            cwd=cwd,
        )
    except OSError as e:
        raise ExecutionError(f"failed to start bash: {e}") from e
    return proc.stdout.decode("utf-8", errors="replace"), proc.returncode


def open_editor(editor: str, filename: str = "") -> None:
    """Launch *editor* on *filename*, handing it the terminal until it exits."""
    path = shutil.which(editor)
    if path is None:
        raise ExecutionError(f"editor {editor!r} not found")
    argv = [path] + ([filename] if filename else [])
    logger.info("opening editor: %s", " ".join(argv))
    try:
        proc = subprocess.run(argv)
    except OSError as e:
        raise ExecutionError(f"failed to start {editor}: {e}") from e
    if proc.returncode != 0:
        raise ExecutionError(f"{editor} exited with status {proc.returncode}")
