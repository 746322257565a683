"""Tests for the command registry and the built-in slash-commands."""

from io import StringIO
from unittest.mock import patch

import pytest
from rich.console import Console

from hzmind.accounts import Account, AccountStore
from hzmind.codebase import Project
from hzmind.commands import Command, CommandRegistry
from hzmind.conversation import ConversationSession
from hzmind.errors import (
    AccountNotFoundError,
    ExecutionError,
    NoCurrentAccountError,
    NotFoundError,
    RemoteError,
    UnknownCommandError,
    ValidationError,
)
from hzmind.output import Output
from hzmind.repl import Repl, StreamReader


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class FakeClient:
    def __init__(self, models=None, error=None):
        self.models = models or []
        self.error = error
        self.calls = []

    def list_models(self, url, api_key):
        self.calls.append((url, api_key))
        if self.error:
            raise self.error
        return self.models

    def send_message(self, url, model, api_key, messages):
        return "reply"


def _make_repl(tmp_path, input_text="", store=None, client=None):
    buf = StringIO()
    output = Output(Console(file=buf, no_color=True, width=200))
    store = store if store is not None else AccountStore()
    client = client or FakeClient()
    project = Project(tmp_path)
    session = ConversationSession(
        store, client, project, count_tokens=lambda text, model: len(text.split())
    )
    repl = Repl(
        accounts=store,
        session=session,
        client=client,
        project=project,
        output=output,
        reader=StreamReader(StringIO(input_text)),
        version="1.2.3",
    )
    return repl, buf


def _store_with(*names, current=""):
    return AccountStore(
        [Account(n, f"https://{n}.example/v1", f"key-{n}", "m") for n in names], current
    )


# ===========================================================================
# Registry
# ===========================================================================


class TestRegistry:
    def test_sorted_by_name(self):
        registry = CommandRegistry()
        for name in ["zeta", "alpha", "mid"]:
            registry.register(Command(name, "", lambda arg: None))
        assert [c.name for c in registry.commands] == ["alpha", "mid", "zeta"]

    def test_case_sensitive_sort_key(self):
        registry = CommandRegistry()
        for name in ["beta", "Alpha"]:
            registry.register(Command(name, "", lambda arg: None))
        assert [c.name for c in registry.commands] == ["Alpha", "beta"]

    def test_dispatch_case_insensitive(self):
        registry = CommandRegistry()
        seen = []
        registry.register(Command("help", "List all commands", seen.append))
        registry.dispatch("HELP", "x")
        registry.dispatch("Help", "y")
        assert seen == ["x", "y"]

    def test_unknown_command(self):
        registry = CommandRegistry()
        with pytest.raises(UnknownCommandError, match="/nope"):
            registry.dispatch("nope")

    def test_duplicate_rejected(self):
        registry = CommandRegistry()
        registry.register(Command("help", "", lambda arg: None))
        with pytest.raises(ValueError):
            registry.register(Command("HELP", "", lambda arg: None))


# ===========================================================================
# Built-ins
# ===========================================================================


class TestBuiltins:
    def test_builtin_names(self, tmp_path):
        repl, _ = _make_repl(tmp_path)
        names = [c.name for c in repl.registry.commands]
        for required in [
            "acc", "bash", "clear", "editor", "exit", "forget",
            "help", "init", "model", "models",
        ]:
            assert required in names
        assert names == sorted(names)

    def test_help_lists_all_sorted(self, tmp_path):
        repl, buf = _make_repl(tmp_path)
        repl.registry.dispatch("HELP")
        lines = [l for l in buf.getvalue().splitlines() if l.startswith("/")]
        assert len(lines) == len(repl.registry.commands)
        assert lines[0].startswith("/acc - ")
        assert "/help - List all commands" in lines

    def test_exit_stops(self, tmp_path):
        repl, _ = _make_repl(tmp_path)
        repl.running = True
        repl.registry.dispatch("exit")
        assert repl.running is False
        assert repl.output.closed

    def test_init_creates_project(self, tmp_path):
        repl, buf = _make_repl(tmp_path)
        repl.registry.dispatch("init")
        assert (tmp_path / "hzmind" / "HZMIND.md").is_file()
        assert (tmp_path / "hzmind" / ".hzmignore").is_file()
        assert "Project initiated" in buf.getvalue()

    @pytest.mark.parametrize("name", ["clear", "forget"])
    def test_clear_and_forget(self, tmp_path, name):
        repl, buf = _make_repl(tmp_path, store=_store_with("a", current="a"))
        repl.session.handle_user_turn("hello")
        repl.registry.dispatch(name)
        assert repl.session.messages == [{"role": "system", "content": ""}]
        assert repl.session.token_count == 0
        assert "Context was successfully deleted" in buf.getvalue()

    def test_info(self, tmp_path):
        repl, buf = _make_repl(tmp_path)
        repl.registry.dispatch("info")
        assert "v1.2.3" in buf.getvalue()

    def test_session(self, tmp_path):
        repl, buf = _make_repl(tmp_path, store=_store_with("a", current="a"))
        repl.registry.dispatch("session")
        out = buf.getvalue()
        assert "Account:   'a'" in out
        assert "Model:     'm'" in out
        assert "Context:   0 tokens" in out

    def test_session_logged_out(self, tmp_path):
        repl, buf = _make_repl(tmp_path)
        repl.registry.dispatch("session")
        assert "Account:   '-'" in buf.getvalue()

    def test_tree(self, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "app.py").write_text("", encoding="utf-8")
        repl, buf = _make_repl(tmp_path)
        repl.registry.dispatch("tree")
        assert "└── src" in buf.getvalue()
        assert "app.py" in buf.getvalue()


class TestModels:
    def test_lists_models(self, tmp_path):
        client = FakeClient(models=["gpt-4o", "gpt-4o-mini"])
        repl, buf = _make_repl(tmp_path, store=_store_with("a", current="a"), client=client)
        repl.registry.dispatch("models")
        assert client.calls == [("https://a.example/v1", "key-a")]
        assert "gpt-4o-mini" in buf.getvalue()

    def test_requires_account(self, tmp_path):
        repl, _ = _make_repl(tmp_path)
        with pytest.raises(NoCurrentAccountError):
            repl.registry.dispatch("models")

    def test_remote_error_propagates(self, tmp_path):
        client = FakeClient(error=RemoteError("API error: 401"))
        repl, _ = _make_repl(tmp_path, store=_store_with("a", current="a"), client=client)
        with pytest.raises(RemoteError):
            repl.registry.dispatch("models")


class TestModel:
    def test_sets_model(self, tmp_path):
        store = _store_with("a", current="a")
        repl, buf = _make_repl(tmp_path, store=store)
        repl.registry.dispatch("model", "gpt-4o")
        assert store.get_account("a").model == "gpt-4o"
        assert "Successfully changed model to 'gpt-4o' for account 'a'" in buf.getvalue()

    @pytest.mark.parametrize("arg", ["", "two words"])
    def test_usage(self, tmp_path, arg):
        repl, _ = _make_repl(tmp_path, store=_store_with("a", current="a"))
        with pytest.raises(ValidationError, match="usage"):
            repl.registry.dispatch("model", arg)


class TestAcc:
    def test_list_empty(self, tmp_path):
        repl, buf = _make_repl(tmp_path)
        repl.registry.dispatch("acc")
        assert "no accounts" in buf.getvalue()

    def test_list_accounts(self, tmp_path):
        repl, buf = _make_repl(tmp_path, store=_store_with("a", "b", current="b"))
        repl.registry.dispatch("acc")
        out = buf.getvalue()
        assert "Name: a" in out
        assert "Name: b" in out
        assert "(current)" in out
        assert "key-a" not in out

    def test_new_via_wizard(self, tmp_path):
        store = AccountStore()
        repl, buf = _make_repl(
            tmp_path,
            input_text="work\nhttps://api.example.com/v1\nsecret\ngpt-4o\n",
            store=store,
        )
        repl.registry.dispatch("acc", "new")
        account = store.get_account("work")
        assert account.api_key == "secret"
        assert account.model == "gpt-4o"
        assert "Successfully created the account 'work'" in buf.getvalue()

    def test_new_invalid_url(self, tmp_path):
        store = AccountStore()
        repl, _ = _make_repl(tmp_path, input_text="work\nnot-a-url\n", store=store)
        with pytest.raises(ValidationError):
            repl.registry.dispatch("acc", "new")
        assert store.accounts == []

    def test_login_logout(self, tmp_path):
        store = _store_with("a")
        repl, buf = _make_repl(tmp_path, store=store)
        repl.registry.dispatch("acc", "login a")
        assert store.current_account_name == "a"
        repl.registry.dispatch("acc", "logout")
        assert store.current_account_name == ""
        out = buf.getvalue()
        assert "Successfully logged in to 'a'" in out
        assert "Successfully logged out from 'a'" in out

    def test_login_unknown(self, tmp_path):
        repl, _ = _make_repl(tmp_path, store=_store_with("a"))
        with pytest.raises(AccountNotFoundError):
            repl.registry.dispatch("acc", "login zzz")

    def test_remove(self, tmp_path):
        store = _store_with("a", current="a")
        repl, buf = _make_repl(tmp_path, store=store)
        repl.registry.dispatch("acc", "remove a")
        assert store.accounts == []
        assert store.current_account_name == ""
        assert "Successfully removed account 'a'" in buf.getvalue()

    def test_remove_missing_warns(self, tmp_path):
        repl, buf = _make_repl(tmp_path, store=_store_with("a"))
        repl.registry.dispatch("acc", "remove zzz")
        assert "no account named 'zzz'" in buf.getvalue()

    def test_info(self, tmp_path):
        repl, buf = _make_repl(tmp_path, store=_store_with("a"))
        repl.registry.dispatch("acc", "info a")
        assert "API Url: https://a.example/v1" in buf.getvalue()

    def test_missing_argument(self, tmp_path):
        repl, _ = _make_repl(tmp_path, store=_store_with("a"))
        with pytest.raises(ValidationError, match="usage: /acc login <name>"):
            repl.registry.dispatch("acc", "login")

    def test_unknown_subcommand(self, tmp_path):
        repl, _ = _make_repl(tmp_path)
        with pytest.raises(NotFoundError, match="unknown /acc command"):
            repl.registry.dispatch("acc", "frobnicate")


class TestSubprocessCommands:
    def test_bash_prints_output(self, tmp_path):
        repl, buf = _make_repl(tmp_path)
        with patch("hzmind.commands.run_bash", return_value=("hello\n", 0)) as run:
            repl.registry.dispatch("bash", "echo hello")
        run.assert_called_once_with("echo hello")
        assert "hello" in buf.getvalue()

    def test_editor_with_file(self, tmp_path):
        repl, _ = _make_repl(tmp_path)
        with patch("hzmind.commands.open_editor") as editor:
            repl.registry.dispatch("editor", "vim notes.txt")
        editor.assert_called_once_with("vim", "notes.txt")

    def test_editor_without_file(self, tmp_path):
        repl, _ = _make_repl(tmp_path)
        with patch("hzmind.commands.open_editor") as editor:
            repl.registry.dispatch("editor", "nano")
        editor.assert_called_once_with("nano", "")

    def test_editor_usage(self, tmp_path):
        repl, _ = _make_repl(tmp_path)
        with pytest.raises(ValidationError):
            repl.registry.dispatch("editor", "")

    def test_editor_missing_binary(self, tmp_path):
        repl, _ = _make_repl(tmp_path)
        with patch(
            "hzmind.commands.open_editor", side_effect=ExecutionError("editor 'x' not found")
        ):
            with pytest.raises(ExecutionError):
                repl.registry.dispatch("editor", "x")
