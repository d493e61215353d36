"""Tests for TaskRepository and the local filesystem."""

from pathlib import Path

import pytest

from pointdo.errors import TaskFileNotFoundError
from pointdo.fs import LocalFileSystem
from pointdo.repository import TaskRepository

from conftest import MemoryFileSystem

TASKS = Path("/work/tasks.md")


class TestReadWrite:
    """Test cases for read_lines/write_lines."""

    def test_read_missing_file_raises(self):
        repo = TaskRepository(MemoryFileSystem())
        with pytest.raises(TaskFileNotFoundError) as exc_info:
            repo.read_lines(TASKS)
        assert exc_info.value.path == TASKS
        assert isinstance(exc_info.value, FileNotFoundError)

    def test_empty_file_is_one_empty_line(self):
        repo = TaskRepository(MemoryFileSystem({str(TASKS): ""}))
        assert repo.read_lines(TASKS) == [""]

    @pytest.mark.parametrize(
        "content",
        ["- [ ] A\n- [x] B", "- [ ] A\n", "\n\n# H\n\n", "a\r\nb\r\n"],
    )
    def test_roundtrip_preserves_content(self, content):
        fs = MemoryFileSystem({str(TASKS): content})
        repo = TaskRepository(fs)
        repo.write_lines(TASKS, repo.read_lines(TASKS))
        assert fs.files[TASKS] == content

    def test_local_fs_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "a" / "b" / "tasks.md"
        repo = TaskRepository(LocalFileSystem())
        repo.write_lines(path, ["- [ ] A", "👉 - [ ] B"])
        assert path.read_text(encoding="utf-8") == "- [ ] A\n👉 - [ ] B"
        assert repo.read_lines(path) == ["- [ ] A", "👉 - [ ] B"]

    def test_local_fs_keeps_crlf(self, tmp_path):
        path = tmp_path / "tasks.md"
        path.write_bytes(b"- [ ] A\r\n- [ ] B")
        fs = LocalFileSystem()
        fs.write_text(path, fs.read_text(path))
        assert path.read_bytes() == b"- [ ] A\r\n- [ ] B"


class TestWriteContent:
    """Test cases for paste modes."""

    def test_overwrite(self):
        fs = MemoryFileSystem({str(TASKS): "old"})
        TaskRepository(fs).write_content(TASKS, "new", "overwrite")
        assert fs.files[TASKS] == "new"

    def test_append(self):
        fs = MemoryFileSystem({str(TASKS): "old"})
        TaskRepository(fs).write_content(TASKS, "new", "append")
        assert fs.files[TASKS] == "old\nnew"

    def test_insert(self):
        fs = MemoryFileSystem({str(TASKS): "old"})
        TaskRepository(fs).write_content(TASKS, "new", "insert")
        assert fs.files[TASKS] == "new\nold"

    def test_append_to_missing_or_empty_file(self):
        fs = MemoryFileSystem({str(TASKS): ""})
        repo = TaskRepository(fs)
        repo.write_content(TASKS, "new", "append")
        assert fs.files[TASKS] == "new"

        other = Path("/work/other.md")
        repo.write_content(other, "new", "insert")
        assert fs.files[other] == "new"

    def test_literal_newlines_are_expanded(self):
        fs = MemoryFileSystem()
        TaskRepository(fs).write_content(TASKS, "- [ ] A\\n- [ ] B", "overwrite")
        assert fs.lines(TASKS) == ["- [ ] A", "- [ ] B"]

    def test_invalid_mode(self):
        fs = MemoryFileSystem()
        with pytest.raises(ValueError, match="Invalid paste mode"):
            TaskRepository(fs).write_content(TASKS, "x", "replace")
        assert fs.writes == []
