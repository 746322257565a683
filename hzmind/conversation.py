"""Chat history with the codebase snapshot as system prompt."""

import copy
import json
import logging

from .errors import HzmindError
from .llm import count_tokens as _default_count_tokens

logger = logging.getLogger(__name__)

CODEBASE_HEADER = "\n\n## Codebase\n\n"


def build_system_prompt(readme: str, files: list[dict]) -> str:
    return readme + CODEBASE_HEADER + json.dumps(files)


class ConversationSession:
    """Multi-turn conversation against the current account.

    ``messages[0]`` is the system prompt once a turn has been attempted; it is
    rebuilt from the project readme and a fresh snapshot before every send.
    A failed send removes only the user message it added.
    """

    def __init__(self, accounts, client, project, output=None, count_tokens=None):
        self.accounts = accounts
        self.client = client
        self.project = project
        self.output = output
        self.count_tokens = count_tokens or _default_count_tokens
        self._messages: list[dict] = []
        self._token_count = 0

    @property
    def messages(self) -> list[dict]:
        return copy.deepcopy(self._messages)

    @property
    def token_count(self) -> int:
        return self._token_count

    def _system_prompt(self) -> str:
        readme = self.project.readme()
        if readme is None:
            if self.output is not None:
                self.output.warning(f"no {self.project.paths.readme} file (run /init)")
            logger.warning("no readme at %s", self.project.paths.readme)
            readme = ""
        return build_system_prompt(readme, self.project.snapshot())

    def _recount(self, model: str) -> None:
        self._token_count = sum(
            self.count_tokens(m["content"], model) for m in self._messages
        )

    def handle_user_turn(self, text: str) -> str:
        """Send *text* with the full history; return the assistant's reply."""
        account = self.accounts.get_current_account()
        logger.info("handling user message (length: %d chars)", len(text))

        system = {"role": "system", "content": self._system_prompt()}
        if self._messages:
            self._messages[0] = system
        else:
            self._messages.append(system)

        self._messages.append({"role": "user", "content": text})
        try:
            if self.output is not None:
                with self.output.status("Sending codebase and querying LLM..."):
                    reply = self._send(account)
            else:
                reply = self._send(account)
        except (HzmindError, KeyboardInterrupt) as e:
            logger.error("API call failed for user message: %s", str(e) or "interrupted")
            self._messages.pop()
            raise

        logger.info("received response from API for user message")
        self._messages.append({"role": "assistant", "content": reply})
        self._recount(account.model)
        return reply

    def _send(self, account) -> str:
        return self.client.send_message(
            account.api_url, account.model, account.api_key, copy.deepcopy(self._messages)
        )

    def clear(self) -> None:
        """Drop the history; the next turn starts with only a fresh system prompt."""
        self._messages = [{"role": "system", "content": ""}]
        self._token_count = 0
        logger.info("completed context clearing")
