"""Config file and project directory handling for hzmind.

Accounts live in ~/.config/hzmind/config.json (respecting XDG_CONFIG_HOME).
Per-project files live in ./hzmind/: HZMIND.md (readme sent with every chat
turn), .hzmignore (extra ignore patterns), hzmind.log and out/.
"""

import json
import logging
import os
from pathlib import Path

from .accounts import AccountStore
from .errors import ConfigError, StorageError

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.json"
PROJECT_DIR = "hzmind"
README_FILE = "HZMIND.md"
IGNORE_FILE = ".hzmignore"
LOG_FILE = "hzmind.log"
OUT_DIR = "out"

EMPTY_CONFIG = {"currentAccount": "", "accounts": []}

_ACCOUNT_FIELDS = ("name", "apiUrl", "apiKey", "model")


def global_config_dir() -> Path:
    """Return the global config directory, respecting XDG_CONFIG_HOME."""
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "hzmind"
    return Path.home() / ".config" / "hzmind"


def config_path(config_dir: Path | None = None) -> Path:
    return Path(config_dir or global_config_dir()) / CONFIG_FILE


class ProjectPaths:
    """Locations of the per-project files below *root*."""

    def __init__(self, root: str | Path = "."):
        self.root = Path(root)
        self.dir = self.root / PROJECT_DIR
        self.readme = self.dir / README_FILE
        self.ignore = self.dir / IGNORE_FILE
        self.log = self.dir / LOG_FILE
        self.out = self.dir / OUT_DIR


def setup_project_dir(paths: ProjectPaths) -> None:
    """Create hzmind/, HZMIND.md and .hzmignore where missing. Never overwrites."""
    try:
        paths.dir.mkdir(exist_ok=True)
        for path in (paths.readme, paths.ignore):
            if not path.exists():
                path.touch()
    except OSError as e:
        raise StorageError(f"cannot initialize project in {paths.dir}: {e}") from e
    logger.info("project initiated in %s", paths.dir)


# --- Validation ---


def _validate_config(data, source: str) -> None:
    """Check the document shape; raises ConfigError with the offending location."""
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: expected a JSON object at top level")

    current = data.get("currentAccount", "")
    if not isinstance(current, str):
        raise ConfigError(
            f"{source}: 'currentAccount' expected string, got {type(current).__name__}"
        )

    accounts = data.get("accounts", [])
    if not isinstance(accounts, list):
        raise ConfigError(
            f"{source}: 'accounts' expected list, got {type(accounts).__name__}"
        )

    seen: set[str] = set()
    for i, entry in enumerate(accounts):
        if not isinstance(entry, dict):
            raise ConfigError(f"{source}: accounts[{i}]: expected object")
        for field in _ACCOUNT_FIELDS:
            if field == "model" and field not in entry:
                continue
            if field not in entry:
                raise ConfigError(f"{source}: accounts[{i}]: missing {field!r}")
            if not isinstance(entry[field], str):
                raise ConfigError(
                    f"{source}: accounts[{i}].{field}: expected string, "
                    f"got {type(entry[field]).__name__}"
                )
        if entry["name"] in seen:
            raise ConfigError(f"{source}: duplicate account name {entry['name']!r}")
        seen.add(entry["name"])


# --- Persistence ---


class ConfigFile:
    """Persistence port for AccountStore, bound to one JSON file.

    Top-level keys other than currentAccount/accounts are kept from load and
    written back unchanged after them.
    """

    def __init__(self, path: Path, extra: dict | None = None):
        self.path = Path(path)
        self.extra = dict(extra or {})

    def save(self, state: dict) -> None:
        document = {
            "currentAccount": state.get("currentAccount", ""),
            "accounts": state.get("accounts", []),
        }
        for key in sorted(self.extra):
            document[key] = self.extra[key]
        text = json.dumps(document, indent=2) + "\n"
        # Create or truncate; a crash mid-write can leave a partial file.
        try:
            with self.path.open("w", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            logger.error("failed to write config %s: %s", self.path, e)
            raise StorageError(f"cannot write config file {self.path}: {e}") from e


def read_config(path: Path) -> dict:
    """Read and validate the config document. Raises ConfigError."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"{path}: cannot read file: {e}") from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}: invalid JSON: {e}") from e
    _validate_config(data, str(path))
    return data


def load_account_store(path: Path) -> AccountStore:
    """Load the config file into an AccountStore that saves back to *path*."""
    path = Path(path)
    data = read_config(path)
    extra = {k: v for k, v in data.items() if k not in EMPTY_CONFIG}
    store = AccountStore.from_dict(data, persistence=ConfigFile(path, extra))
    logger.info("loaded %d account(s) from %s", len(store.accounts), path)
    return store


def save_account_store(path: Path, store: AccountStore) -> None:
    ConfigFile(path).save(store.to_dict())


def ensure_config_file(path: Path) -> bool:
    """Create the config directory and an empty config if missing.

    Returns True if a new file was written. Raises ConfigError on failure.
    """
    path = Path(path)
    if path.is_file():
        return False
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        ConfigFile(path).save(EMPTY_CONFIG)
    except (OSError, StorageError) as e:
        raise ConfigError(f"cannot create config file {path}: {e}") from e
    logger.info("created config file %s", path)
    return True
