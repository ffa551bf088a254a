"""
Files module for script engine: exists, read, write, list.

All paths are relative to the scripts-storage root; paths that resolve
outside of it are rejected with FileError.
"""

from pathlib import Path
from types import SimpleNamespace
from typing import Any

from scriptshot.core.errors import FileError


def _resolve(root: Path, path: str) -> Path:
    if not isinstance(path, str) or not path.strip():
        raise FileError("Path is required")
    p = Path(path)
    if p.is_absolute():
        raise FileError(f"Absolute paths are not allowed: {path}")
    base = root.resolve()
    target = (base / p).resolve()
    if target != base and base not in target.parents:
        raise FileError(f"Path escapes the storage root: {path}")
    return target


def make_files_module(*, root: Path) -> Any:
    """Build the `files` object rooted at *root* (created lazily on first write)."""

    def exists(path: str) -> bool:
        return _resolve(root, path).exists()

    def read(path: str) -> str:
        target = _resolve(root, path)
        if not target.is_file():
            raise FileError(f"File not found: {path}")
        try:
            return target.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise FileError(f"Unable to read {path}: {e}") from e

    def write(path: str, content: str | None) -> None:
        target = _resolve(root, path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text("" if content is None else str(content), encoding="utf-8")
        except OSError as e:
            raise FileError(f"Unable to write {path}: {e}") from e

    def list_dir(directory: str = ".") -> list[str]:
        target = _resolve(root, directory) if directory not in ("", ".") else root
        if not target.is_dir():
            return []
        return sorted(entry.name for entry in target.iterdir())

    return SimpleNamespace(exists=exists, read=read, write=write, list=list_dir)
