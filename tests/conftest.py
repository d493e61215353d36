"""Shared fixtures for pointdo tests."""

from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest
from click.testing import CliRunner

from pointdo.engine import TaskEngine
from pointdo.repository import TaskRepository


class MemoryFileSystem:
    """In-memory FileSystem that records writes and can simulate read failures."""

    def __init__(self, files: Optional[Dict[str, str]] = None):
        self.files: Dict[Path, str] = {Path(p): c for p, c in (files or {}).items()}
        self.writes: List[Path] = []
        self.unreadable: Set[Path] = set()
        self.unwritable: Set[Path] = set()

    def exists(self, path: Path) -> bool:
        return Path(path) in self.files

    def read_text(self, path: Path) -> str:
        path = Path(path)
        if path in self.unreadable:
            raise PermissionError(f"Permission denied: '{path}'")
        if path not in self.files:
            raise FileNotFoundError(f"No such file: '{path}'")
        return self.files[path]

    def write_text(self, path: Path, content: str) -> None:
        path = Path(path)
        if path in self.unwritable:
            raise PermissionError(f"Permission denied: '{path}'")
        self.files[path] = content
        self.writes.append(path)

    def lines(self, path) -> List[str]:
        return self.files[Path(path)].split("\n")


@pytest.fixture
def memfs():
    """Empty in-memory filesystem"""
    return MemoryFileSystem()


@pytest.fixture
def engine(memfs):
    """TaskEngine backed by the in-memory filesystem"""
    return TaskEngine(TaskRepository(memfs))


@pytest.fixture
def cli_runner():
    """Click CLI test runner"""
    return CliRunner()


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Real project directory with an isolated home and global config dir.

    Returns the project directory, which is also the working directory.
    """
    home = tmp_path / "home"
    project = tmp_path / "project"
    home.mkdir()
    project.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("POINTDO_HOME", str(home / ".pointdo"))
    monkeypatch.chdir(project)
    return project
