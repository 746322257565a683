"""Slash-command registry and the built-in commands."""

import logging
import os
from dataclasses import dataclass
from functools import partial
from typing import Callable

from .accounts import create_account_interactively
from .codebase import render_tree
from .config import setup_project_dir
from .errors import NotFoundError, UnknownCommandError, ValidationError
from .executor import open_editor, run_bash

logger = logging.getLogger(__name__)


@dataclass
class Command:
    name: str
    description: str
    handler: Callable[[str], None]


class CommandRegistry:
    """Commands kept sorted by name; lookup ignores case."""

    def __init__(self):
        self._commands: list[Command] = []

    @property
    def commands(self) -> list[Command]:
        return list(self._commands)

    def register(self, command: Command) -> None:
        if self.find(command.name) is not None:
            raise ValueError(f"command /{command.name} is already registered")
        self._commands.append(command)
        self._commands.sort(key=lambda c: c.name)

    def find(self, name: str) -> Command | None:
        wanted = name.lower()
        for command in self._commands:
            if command.name.lower() == wanted:
                return command
        return None

    def dispatch(self, name: str, arg: str = "") -> None:
        command = self.find(name)
        if command is None:
            logger.error("unknown command was entered: /%s", name)
            raise UnknownCommandError(name)
        logger.info("command '/%s' was entered", command.name)
        command.handler(arg)


# ---------------------------------------------------------------------------
# Built-in command handlers. Each takes the running Repl and the argument
# string (everything after the command name, stripped).
# ---------------------------------------------------------------------------


def _cmd_help(repl, arg: str) -> None:
    for command in repl.registry.commands:
        repl.output.print(f"/{command.name} - {command.description}")


def _cmd_exit(repl, arg: str) -> None:
    repl.running = False
    repl.output.close()


def _cmd_init(repl, arg: str) -> None:
    setup_project_dir(repl.project.paths)
    repl.output.success("Project initiated")


def _cmd_clear(repl, arg: str) -> None:
    repl.session.clear()
    repl.output.success("Context was successfully deleted")


def _cmd_models(repl, arg: str) -> None:
    account = repl.accounts.get_current_account()
    for model_id in repl.client.list_models(account.api_url, account.api_key):
        repl.output.print(model_id)


def _cmd_model(repl, arg: str) -> None:
    if not arg or len(arg.split()) != 1:
        raise ValidationError("usage: /model <name>")
    account = repl.accounts.set_model(arg)
    repl.output.success(
        f"Successfully changed model to '{account.model}' for account '{account.name}'"
    )


def _print_accounts(repl) -> None:
    accounts = repl.accounts.accounts
    if not accounts:
        repl.output.print("no accounts")
        return
    for i, account in enumerate(accounts):
        if i:
            repl.output.print()
        text = account.describe()
        if account.name == repl.accounts.current_account_name:
            text += "\n(current)"
        repl.output.print(text)


def _cmd_acc(repl, arg: str) -> None:
    args = arg.split()
    if not args:
        _print_accounts(repl)
        return

    sub = args[0].lower()
    if sub in ("login", "remove", "info") and len(args) != 2:
        raise ValidationError(f"usage: /acc {sub} <name>")
    if sub in ("new", "logout") and len(args) != 1:
        raise ValidationError(f"usage: /acc {sub}")

    store = repl.accounts
    if sub == "new":
        account = create_account_interactively(repl.reader, repl.output)
        store.add_account(account)
        repl.output.success(f"Successfully created the account '{account.name}'")
    elif sub == "logout":
        name = store.logout()
        repl.output.success(f"Successfully logged out from '{name}'")
    elif sub == "login":
        store.login(args[1])
        repl.output.success(f"Successfully logged in to '{args[1]}'")
    elif sub == "remove":
        if store.remove_account(args[1]):
            repl.output.success(f"Successfully removed account '{args[1]}'")
        else:
            repl.output.warning(f"no account named '{args[1]}'")
    elif sub == "info":
        repl.output.print(store.get_account(args[1]).describe())
    else:
        raise NotFoundError(
            f"unknown /acc command {args[0]!r} (try new, login, logout, remove, info)"
        )


def _cmd_bash(repl, arg: str) -> None:
    out, returncode = run_bash(arg)
    repl.output.command_output(out, failed=returncode != 0)


def _cmd_editor(repl, arg: str) -> None:
    args = arg.split()
    if not args:
        raise ValidationError("usage: /editor <editor> [file]")
    open_editor(args[0], args[1] if len(args) > 1 else "")


def _cmd_info(repl, arg: str) -> None:
    repl.output.success(f"HarzMind Code v{repl.version}")


def _cmd_session(repl, arg: str) -> None:
    name, model = "-", "-"
    if repl.accounts.current_account_name:
        account = repl.accounts.get_current_account()
        name, model = account.name, account.model or "-"
    repl.output.print(f"Account:   '{name}'")
    repl.output.print(f"Model:     '{model}'")
    repl.output.print(f"Directory: '{os.getcwd()}'")
    repl.output.print(f"Context:   {repl.session.token_count} tokens")


def _cmd_tree(repl, arg: str) -> None:
    files = repl.project.snapshot()
    repl.output.print(render_tree([f["path"] for f in files]) or "(no files)")


BUILTIN_COMMANDS = [
    ("acc", "Account management (new, login <name>, logout, remove <name>, info <name>)", _cmd_acc),
    ("bash", "Run a bash command", _cmd_bash),
    ("clear", "Clear session context", _cmd_clear),
    ("editor", "Open a CLI editor: /editor <editor> [file]", _cmd_editor),
    ("exit", "End the conversation", _cmd_exit),
    ("forget", "Clear session context", _cmd_clear),
    ("help", "List all commands", _cmd_help),
    ("info", "Show version info", _cmd_info),
    ("init", "Initialize project", _cmd_init),
    ("model", "Change model of the current account", _cmd_model),
    ("models", "List all models", _cmd_models),
    ("session", "Show current session info", _cmd_session),
    ("tree", "Show the codebase tree", _cmd_tree),
]


def register_builtin_commands(registry: CommandRegistry, repl) -> None:
    for name, description, handler in BUILTIN_COMMANDS:
        registry.register(Command(name, description, partial(handler, repl)))
