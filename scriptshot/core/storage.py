"""
Script storage: stored scripts under <root>/scripts plus built-ins bundled with the package.

A stored script with the same name as a built-in overrides it.
"""

import logging
from importlib import resources
from pathlib import Path

from scriptshot.core.errors import ScriptNotFoundError

_log = logging.getLogger(__name__)

ROTATE_SCRIPT = "rotate_screenshot.py"
SHARE_SCRIPT = "quick_share.py"
DEFAULT_SCRIPT = "default.py"
# Listing order for built-ins; everything else sorts case-insensitively after them
BUILT_IN_SCRIPTS = (ROTATE_SCRIPT, SHARE_SCRIPT, DEFAULT_SCRIPT)

SCRIPTS_DIR = "scripts"
SCRIPT_EXTENSION = ".py"
_BUILTIN_PACKAGE = "scriptshot"
_BUILTIN_DIR = "builtin_scripts"


def _check_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Script name is required")
    name = name.strip()
    if "/" in name or "\\" in name or name in (".", ".."):
        raise ValueError(f"Invalid script name: {name!r}")
    if not name.lower().endswith(SCRIPT_EXTENSION):
        raise ValueError(f"Script name must end with {SCRIPT_EXTENSION}: {name!r}")
    return name


def _builtin_rank(name: str) -> int:
    lowered = name.lower()
    for i, builtin in enumerate(BUILT_IN_SCRIPTS):
        if builtin == lowered:
            return i
    return len(BUILT_IN_SCRIPTS)


class ScriptStorage:
    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    @property
    def scripts_dir(self) -> Path:
        return self.root / SCRIPTS_DIR

    def _builtin(self, name: str):
        return resources.files(_BUILTIN_PACKAGE).joinpath(_BUILTIN_DIR).joinpath(name)

    def _builtin_names(self) -> list[str]:
        directory = resources.files(_BUILTIN_PACKAGE).joinpath(_BUILTIN_DIR)
        return [
            entry.name
            for entry in directory.iterdir()
            if entry.is_file() and entry.name.lower().endswith(SCRIPT_EXTENSION)
        ]

    def load(self, name: str) -> str:
        name = _check_name(name)
        stored = self.scripts_dir / name
        if stored.is_file():
            return stored.read_text(encoding="utf-8")
        builtin = self._builtin(name)
        if builtin.is_file():
            return builtin.read_text(encoding="utf-8")
        raise ScriptNotFoundError(f"Script not found: {name}")

    def list_scripts(self) -> list[str]:
        names: dict[str, str] = {}
        if self.scripts_dir.is_dir():
            for entry in self.scripts_dir.iterdir():
                if entry.is_file() and entry.name.lower().endswith(SCRIPT_EXTENSION):
                    names.setdefault(entry.name.lower(), entry.name)
        for name in self._builtin_names():
            names.setdefault(name.lower(), name)
        return sorted(names.values(), key=lambda n: (_builtin_rank(n), n.lower()))

    def save(self, name: str, content: str) -> None:
        name = _check_name(name)
        self.scripts_dir.mkdir(parents=True, exist_ok=True)
        (self.scripts_dir / name).write_text(content, encoding="utf-8")
        _log.info("Saved script %s", name)

    def delete(self, name: str) -> bool:
        """Delete a stored script. Built-ins cannot be deleted; returns False for them."""
        stored = self.scripts_dir / _check_name(name)
        if not stored.is_file():
            return False
        stored.unlink()
        _log.info("Deleted script %s", name)
        return True

    def has_stored_override(self, name: str) -> bool:
        return (self.scripts_dir / _check_name(name)).is_file()
