"""Line classification for markdown task files.

Only three kinds of lines matter:
- Task items: `- [ ] text` / `- [x] text`, optionally prefixed by the marker
- ATX headers: `# text` up to `###### text`
- Everything else, kept verbatim and otherwise ignored

The marker (`👉 `) flags the task currently being worked on. It only ever
prefixes a task line; a marker in front of anything else is plain text.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

MARKER = "👉 "

MARKER_RE = re.compile(r"^👉\s+")
TASK_RE = re.compile(r"^\s*-\s*\[\s*(?P<mark>[xX]?)\s*\]")
HEADER_RE = re.compile(r"^(?P<hashes>#{1,6})\s+(?P<text>\S.*)$")
# Bracket of an unchecked item, up to and including "]"
UNCHECKED_BOX_RE = re.compile(r"^(?P<lead>\s*-\s*)\[\s*\]")
CHECKED_BOX_RE = re.compile(r"^(?P<lead>\s*-\s*)\[\s*[xX]\s*\]")


@dataclass(frozen=True)
class TaskItem:
    """A checkbox item."""

    text: str
    checked: bool
    has_marker: bool


@dataclass(frozen=True)
class HeaderItem:
    """An ATX header (level 1-6)."""

    text: str
    level: int


@dataclass(frozen=True)
class PlainItem:
    text: str


TaskLine = Union[TaskItem, HeaderItem, PlainItem]


def _split_marker(line: str) -> Tuple[str, str]:
    """Return (marker_prefix, rest_of_line); the prefix is "" without a marker."""
    m = MARKER_RE.match(line)
    if m:
        return line[: m.end()], line[m.end() :]
    return "", line


def classify(line: str) -> TaskLine:
    """Classify a raw line as a task, header or plain text."""
    prefix, rest = _split_marker(line)
    m = TASK_RE.match(rest)
    if m:
        return TaskItem(text=line, checked=bool(m.group("mark")), has_marker=bool(prefix))

    m = HEADER_RE.match(line)
    if m:
        return HeaderItem(text=m.group("text").strip(), level=len(m.group("hashes")))

    return PlainItem(text=line)


def is_task(line: str) -> bool:
    return isinstance(classify(line), TaskItem)


def is_checked_task(line: str) -> bool:
    item = classify(line)
    return isinstance(item, TaskItem) and item.checked


def is_unchecked_task(line: str) -> bool:
    item = classify(line)
    return isinstance(item, TaskItem) and not item.checked


def is_header(line: str) -> bool:
    return isinstance(classify(line), HeaderItem)


def header_level(line: str) -> int:
    """Header level (1-6) of a line, or 0 if it is not a header."""
    item = classify(line)
    return item.level if isinstance(item, HeaderItem) else 0


def has_marker(line: str) -> bool:
    """Check if a task line carries the marker."""
    item = classify(line)
    return isinstance(item, TaskItem) and item.has_marker


def strip_marker(line: str) -> str:
    """Return the line without its marker prefix (unchanged if there is none)."""
    return _split_marker(line)[1]


def add_marker(lines: List[str], index: int) -> List[str]:
    """Return a copy of lines with the marker added at index.

    Out-of-range indices and lines that already carry it are left alone.
    """
    new_lines = list(lines)
    if 0 <= index < len(new_lines) and not MARKER_RE.match(new_lines[index]):
        new_lines[index] = MARKER + new_lines[index]
    return new_lines


def remove_marker(lines: List[str], index: int) -> List[str]:
    """Return a copy of lines with the marker removed at index."""
    new_lines = list(lines)
    if 0 <= index < len(new_lines):
        new_lines[index] = strip_marker(new_lines[index])
    return new_lines


def mark_task_complete(line: str) -> str:
    """Turn `- [ ]` into `- [x]`, keeping indentation, marker and text.

    Lines that are not unchecked tasks are returned unchanged.
    """
    if not is_unchecked_task(line):
        return line
    prefix, rest = _split_marker(line)
    return prefix + UNCHECKED_BOX_RE.sub(lambda m: f"{m.group('lead')}[x]", rest, count=1)


def uncheck_task(line: str) -> str:
    """Turn `- [x]` into `- [ ]`, keeping indentation, marker and text."""
    if not is_checked_task(line):
        return line
    prefix, rest = _split_marker(line)
    return prefix + CHECKED_BOX_RE.sub(lambda m: f"{m.group('lead')}[ ]", rest, count=1)


def find_first_task(lines: List[str]) -> Optional[int]:
    """Index of the first task (checked or not), or None."""
    for i, line in enumerate(lines):
        if is_task(line):
            return i
    return None


def find_first_unchecked_task(lines: List[str]) -> Optional[int]:
    return find_next_unchecked_task(lines, -1)


def find_next_unchecked_task(lines: List[str], after: int) -> Optional[int]:
    """Index of the first unchecked task strictly after `after`, or None."""
    for i in range(after + 1, len(lines)):
        if is_unchecked_task(lines[i]):
            return i
    return None


def find_markers(lines: List[str]) -> List[int]:
    """Indices of every task line carrying the marker."""
    return [i for i, line in enumerate(lines) if has_marker(line)]


def find_marker(lines: List[str]) -> Optional[int]:
    """Index of the first marked task line, or None."""
    markers = find_markers(lines)
    return markers[0] if markers else None
