"""Named API accounts and the current-account pointer.

The store never touches the filesystem itself. Every successful mutation is
followed by exactly one call to ``persistence.save(store.to_dict())``; a
failing save propagates as ``StorageError`` and the in-memory change stays.
"""

import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlparse

from .errors import (
    AccountNotFoundError,
    DuplicateNameError,
    NoCurrentAccountError,
    NotLoggedInError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass
class Account:
    name: str
    api_url: str
    api_key: str
    model: str = ""

    def describe(self) -> str:
        return f"Name: {self.name}\nAPI Url: {self.api_url}\nModel: {self.model or '-'}"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "apiUrl": self.api_url,
            "apiKey": self.api_key,
            "model": self.model,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Account":
        return cls(
            name=data["name"],
            api_url=data["apiUrl"],
            api_key=data["apiKey"],
            model=data.get("model", ""),
        )


def is_valid_url(url: str) -> bool:
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_account(account: Account) -> None:
    """Raise ValidationError if the account cannot be stored."""
    name = account.name.strip()
    if not name:
        raise ValidationError("name cannot be empty")
    # Sub-commands split on whitespace, so such a name could never be addressed.
    if any(ch.isspace() for ch in account.name):
        raise ValidationError("name cannot contain whitespace")
    if not account.api_url.strip():
        raise ValidationError("api url cannot be empty")
    if not is_valid_url(account.api_url):
        raise ValidationError(f"invalid api url: {account.api_url!r}")
    if not account.api_key.strip():
        raise ValidationError("api token cannot be empty")


class Persistence(Protocol):
    def save(self, state: dict) -> None: ...


class _NoPersistence:
    def save(self, state: dict) -> None:
        pass


class AccountStore:
    def __init__(
        self,
        accounts: list[Account] | None = None,
        current_account_name: str = "",
        persistence: Persistence | None = None,
    ):
        self.accounts: list[Account] = list(accounts or [])
        if current_account_name and not self.has_account(current_account_name):
            logger.warning(
                "current account %r does not exist, logging out", current_account_name
            )
            current_account_name = ""
        self.current_account_name = current_account_name
        self.persistence = persistence or _NoPersistence()

    def _save(self) -> None:
        self.persistence.save(self.to_dict())

    # -- Queries -------------------------------------------------------------

    def get_account(self, name: str) -> Account:
        for account in self.accounts:
            if account.name == name:
                return account
        raise AccountNotFoundError(name)

    def get_current_account(self) -> Account:
        if not self.current_account_name:
            raise NoCurrentAccountError()
        return self.get_account(self.current_account_name)

    def has_account(self, name: str) -> bool:
        return any(a.name == name for a in self.accounts)

    # -- Mutations -----------------------------------------------------------

    def add_account(self, account: Account) -> None:
        validate_account(account)
        if self.has_account(account.name):
            raise DuplicateNameError(account.name)
        self.accounts.append(account)
        logger.info("created account %r", account.name)
        self._save()

    def remove_account(self, name: str) -> bool:
        """Remove *name*; returns False (and saves nothing) if it does not exist."""
        for i, account in enumerate(self.accounts):
            if account.name == name:
                break
        else:
            return False
        del self.accounts[i]
        if self.current_account_name == name:
            self.current_account_name = ""
        logger.warning("removed account %r", name)
        self._save()
        return True

    def login(self, name: str) -> None:
        self.get_account(name)
        self.current_account_name = name
        logger.info("logged in to %r", name)
        self._save()

    def logout(self) -> str:
        name = self.current_account_name
        if not name:
            raise NotLoggedInError()
        self.current_account_name = ""
        logger.info("logged out from %r", name)
        self._save()
        return name

    def set_model(self, model: str) -> Account:
        model = model.strip()
        if not model:
            raise ValidationError("model cannot be empty")
        account = self.get_current_account()
        account.model = model
        logger.info("changed model to %r for account %r", model, account.name)
        self._save()
        return account

    # -- Serialization -------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "currentAccount": self.current_account_name,
            "accounts": [a.to_dict() for a in self.accounts],
        }

    @classmethod
    def from_dict(cls, data: dict, persistence: Persistence | None = None) -> "AccountStore":
        accounts = [Account.from_dict(a) for a in data.get("accounts", [])]
        return cls(accounts, data.get("currentAccount", ""), persistence)


def create_account_interactively(reader, output) -> Account:
    """Prompt for name, API url, token (hidden) and an optional model.

    *reader* provides ``read_line(prompt)`` and ``read_password(prompt)``.
    Raises ValidationError as soon as a field is rejected.
    """
    output.print("Create account")
    name = reader.read_line("Name: ").strip()
    if not name:
        raise ValidationError("name cannot be empty")
    api_url = reader.read_line("API Url: ").strip()
    if not api_url:
        raise ValidationError("api url cannot be empty")
    if not is_valid_url(api_url):
        raise ValidationError(f"invalid api url: {api_url!r}")
    api_key = reader.read_password("API Token: ").strip()
    if not api_key:
        raise ValidationError("api token cannot be empty")
    model = reader.read_line("Model (optional): ").strip()
    account = Account(name=name, api_url=api_url, api_key=api_key, model=model)
    validate_account(account)
    return account
