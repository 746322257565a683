"""Exception hierarchy shared by the account store, commands and chat session."""


class HzmindError(Exception):
    """Base class for failures reported to the user without stopping the REPL."""


class ConfigError(HzmindError):
    """Raised for configuration problems found at startup (unreadable or invalid config)."""


class ValidationError(HzmindError):
    """Raised for malformed user input, before any state is changed."""


class NotFoundError(HzmindError):
    pass


class AccountNotFoundError(NotFoundError):
    def __init__(self, name: str):
        super().__init__(f"account {name!r} not found")
        self.name = name


class UnknownCommandError(NotFoundError):
    def __init__(self, name: str):
        super().__init__(f"unknown command: /{name}")
        self.name = name


class StateConflictError(HzmindError):
    pass


class DuplicateNameError(StateConflictError):
    def __init__(self, name: str):
        super().__init__(f"account {name!r} already exists")
        self.name = name


class NoCurrentAccountError(StateConflictError):
    def __init__(self):
        super().__init__("no current account (use /acc login <name>)")


class NotLoggedInError(StateConflictError):
    def __init__(self):
        super().__init__("not logged in")


class StorageError(HzmindError):
    """Raised when the config file or project files cannot be read or written."""


class RemoteError(HzmindError):
    """Raised for failed LLM API calls: transport errors, non-2xx, malformed bodies."""


class ExecutionError(HzmindError):
    """Raised when an external program fails to start or exits unsuccessfully."""
