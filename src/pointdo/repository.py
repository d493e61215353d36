"""Reading and writing task files as lists of lines."""

import logging
from pathlib import Path
from typing import List, Literal, Optional

from pointdo.errors import TaskFileNotFoundError
from pointdo.fs import FileSystem, LocalFileSystem

logger = logging.getLogger(__name__)

PasteMode = Literal["overwrite", "append", "insert"]
PASTE_MODES: List[str] = ["overwrite", "append", "insert"]


class TaskRepository:
    """Line-level access to task files.

    Content is split and joined on "\\n" only, so a file written back from
    the lines it was read into is byte-identical.
    """

    def __init__(self, fs: Optional[FileSystem] = None):
        self.fs: FileSystem = fs or LocalFileSystem()

    def exists(self, path: Path) -> bool:
        return self.fs.exists(path)

    def read_lines(self, path: Path) -> List[str]:
        """Read a task file into lines.

        Raises:
            TaskFileNotFoundError: if the file does not exist
        """
        if not self.fs.exists(path):
            raise TaskFileNotFoundError(path)
        return self.fs.read_text(path).split("\n")

    def write_lines(self, path: Path, lines: List[str]) -> None:
        """Overwrite a task file with lines (parent directories are created)."""
        logger.debug(f"Writing {len(lines)} lines to {path}")
        self.fs.write_text(path, "\n".join(lines))

    def write_content(self, path: Path, content: str, mode: PasteMode) -> None:
        """Write pasted text into a task file.

        Literal "\\n" sequences in content are turned into real newlines.

        Args:
            path: Target task file
            content: Text to write
            mode: overwrite (replace), append (existing first) or
                insert (new content first)
        """
        if mode not in PASTE_MODES:
            raise ValueError(f"Invalid paste mode: {mode}")

        content = content.replace("\\n", "\n")
        existing = self.fs.read_text(path) if self.fs.exists(path) else ""

        if mode == "overwrite" or not existing:
            final = content
        elif mode == "append":
            final = f"{existing}\n{content}"
        else:
            final = f"{content}\n{existing}"

        self.fs.write_text(path, final)
