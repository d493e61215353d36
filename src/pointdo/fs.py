"""Filesystem access used by the repository and the config resolver.

Everything that touches disk goes through a `FileSystem`, so the engine and
resolver can run against an in-memory implementation in tests.
"""

from pathlib import Path
from typing import Protocol


class FileSystem(Protocol):
    """Minimal read/write/exists interface."""

    def exists(self, path: Path) -> bool: ...

    def read_text(self, path: Path) -> str: ...

    def write_text(self, path: Path, content: str) -> None:
        """Write content, creating parent directories as needed."""
        ...


class LocalFileSystem:
    """FileSystem backed by the real disk (UTF-8)."""

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def read_text(self, path: Path) -> str:
        # newline="" keeps \r\n intact so lines round-trip verbatim
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()

    def write_text(self, path: Path, content: str) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
