import argparse
import logging
import sys
from importlib import metadata
from pathlib import Path

from .codebase import Project
from .config import (
    config_path,
    ensure_config_file,
    global_config_dir,
    load_account_store,
    setup_project_dir,
)
from .conversation import ConversationSession
from .errors import ConfigError, HzmindError
from .llm import LLMClient
from .output import Output, make_console, transcript_path
from .repl import Repl, StreamReader, TerminalReader

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def package_version() -> str:
    try:
        return metadata.version("hzmind")
    except metadata.PackageNotFoundError:
        return "unknown"


def build_parser():
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="hzmind",
        description=(
            "Chat with an LLM about the code in the current directory. "
            "Run 'hzmind -i' once per project to create the hzmind/ directory."
        ),
    )
    parser.add_argument(
        "-i",
        "--init",
        action="store_true",
        help="Initialize the project directory (hzmind/, HZMIND.md, .hzmignore) first.",
    )
    parser.add_argument(
        "-o",
        "--output",
        action="store_true",
        help="Also write the session transcript to hzmind/out/.",
    )
    parser.add_argument(
        "-l",
        "--log",
        action="store_true",
        help="Write a log to hzmind/hzmind.log.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="store_true",
        help="Print the version and exit.",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory holding config.json (default: ~/.config/hzmind).",
    )
    color_group = parser.add_mutually_exclusive_group()
    color_group.add_argument(
        "--color", action="store_true", help="Force ANSI color even when not a TTY."
    )
    color_group.add_argument(
        "--no-color", action="store_true", help="Disable ANSI color."
    )
    return parser


def setup_logging(path: Path) -> logging.Handler:
    """Attach a file handler to the package logger. Raises ConfigError."""
    try:
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed to initialize logger: {e}") from e
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    pkg_logger = logging.getLogger("hzmind")
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(logging.INFO)
    return handler


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"v{package_version()}")
        sys.exit(0)

    console = make_console(color=args.color, no_color=args.no_color)
    bootstrap = Output(console)
    try:
        repl = _build_repl(args, console, bootstrap)
    except HzmindError as e:
        bootstrap.error(str(e))
        logger.error("%s", e)
        sys.exit(1)
    repl.greet()
    repl.run()


def _build_repl(args, console, bootstrap: Output) -> Repl:
    project = Project(".")
    config_dir = args.config_dir or global_config_dir()

    if args.init:
        setup_project_dir(project.paths)
        bootstrap.success("Project initiated")

    log_handler = None
    if args.log:
        log_handler = setup_logging(project.paths.log)
    logger.info("HarzMind Code started v%s", package_version())
    logger.info("config directory: %s", config_dir)

    path = config_path(config_dir)
    ensure_config_file(path)
    accounts = load_account_store(path)

    transcript = None
    if args.output:
        transcript = transcript_path(project.paths.out)
    try:
        output = Output(console, transcript=transcript)
    except OSError as e:
        raise ConfigError(f"cannot open transcript {transcript}: {e}") from e

    if sys.stdin.isatty():
        reader = TerminalReader(Path(config_dir) / "history")
    else:
        reader = StreamReader(sys.stdin)

    client = LLMClient()
    session = ConversationSession(accounts, client, project, output=output)
    return Repl(
        accounts=accounts,
        session=session,
        client=client,
        project=project,
        output=output,
        reader=reader,
        version=package_version(),
        log_handler=log_handler,
    )


if __name__ == "__main__":
    main()
