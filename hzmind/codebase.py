"""Codebase snapshot sent as chat context, and its tree rendering."""

import fnmatch
import logging
import os
from pathlib import Path

from .config import IGNORE_FILE, PROJECT_DIR, README_FILE, ProjectPaths
from .errors import StorageError

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_PATTERNS = [
    ".git",
    ".idea",
    ".vscode",
    "node_modules",
    "vendor",
    "*.exe",
    "config.xml",
    IGNORE_FILE,
    README_FILE,
    PROJECT_DIR + "/",
]


class IgnoreRules:
    """A small subset of .gitignore matching.

    - ``name`` or ``*.ext`` matches any file or directory with that name;
    - a trailing ``/`` restricts the pattern to directories;
    - a pattern containing ``/`` is matched against the path relative to the root.
    """

    def __init__(self, patterns: list[str]):
        self.patterns = [p.strip() for p in patterns if p.strip()]

    @classmethod
    def from_file(cls, path: Path, defaults: list[str] | None = None) -> "IgnoreRules":
        patterns = list(DEFAULT_IGNORE_PATTERNS if defaults is None else defaults)
        try:
            text = Path(path).read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return cls(patterns)
        except OSError as e:
            raise StorageError(f"cannot read {path}: {e}") from e
        for line in text.splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                patterns.append(line)
        return cls(patterns)

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        name = rel_path.rsplit("/", 1)[-1]
        for pattern in self.patterns:
            dir_only = pattern.endswith("/")
            pat = pattern.rstrip("/")
            if dir_only and not is_dir:
                continue
            if "/" in pat:
                if fnmatch.fnmatch(rel_path, pat.lstrip("/")):
                    return True
            elif fnmatch.fnmatch(name, pat):
                return True
        return False


class Project:
    """Snapshot source for the system prompt: the files under *root* and HZMIND.md."""

    def __init__(self, root: str | Path = "."):
        self.root = Path(root)
        self.paths = ProjectPaths(self.root)

    def ignore_file_exists(self) -> bool:
        return self.paths.ignore.is_file()

    def readme(self) -> str | None:
        """Return HZMIND.md, or None when it does not exist."""
        try:
            return self.paths.readme.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"cannot read {self.paths.readme}: {e}") from e

    def snapshot(self) -> list[dict]:
        """Return ``[{"name", "content", "path"}, ...]`` for every non-ignored file."""
        rules = IgnoreRules.from_file(self.paths.ignore)
        files: list[dict] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            rel_dir = Path(dirpath).relative_to(self.root).as_posix()
            prefix = "" if rel_dir == "." else rel_dir + "/"
            dirnames[:] = sorted(
                d for d in dirnames if not rules.matches(prefix + d, is_dir=True)
            )
            for filename in sorted(filenames):
                rel = prefix + filename
                if rules.matches(rel, is_dir=False):
                    continue
                try:
                    content = (Path(dirpath) / filename).read_text(
                        encoding="utf-8", errors="replace"
                    )
                except OSError as e:
                    raise StorageError(f"error reading file {rel}: {e}") from e
                files.append({"name": filename, "content": content, "path": rel})
        logger.debug("snapshot: %d file(s) under %s", len(files), self.root)
        return files


def render_tree(paths: list[str]) -> str:
    """Draw *paths* (slash-separated) as a sorted tree with box-drawing connectors."""
    tree: dict = {}
    for path in paths:
        parts = [p for p in path.replace("\\", "/").split("/") if p and p != "."]
        node = tree
        for part in parts:
            node = node.setdefault(part, {})
    lines: list[str] = []
    _render_nodes(tree, "", lines)
    return "\n".join(lines)


def _render_nodes(nodes: dict, prefix: str, lines: list[str]) -> None:
    keys = sorted(nodes)
    for i, key in enumerate(keys):
        last = i == len(keys) - 1
        lines.append(prefix + ("└── " if last else "├── ") + key)
        if nodes[key]:
            _render_nodes(nodes[key], prefix + ("    " if last else "│   "), lines)
