"""Task state engine.

Pure functions over lists of lines (statistics, context headers, display
ranges, reset) plus `TaskEngine`, which runs the cross-file "advance"
algorithm:

1. Read every configured file; find the first unchecked task (the target)
   and the marker (the current task).
2. No tasks at all -> NO_TASKS. No unchecked task -> ALL_COMPLETE (a leftover
   marker is removed).
3. No marker -> put it on the target. Marker elsewhere -> move it to the
   target. Marker on the target -> check that task off and move the marker
   to the next unchecked task, searching forward in the same file and then
   round-robin through the other files.

Files that cannot be read are skipped; only when that leaves no target is
ERROR returned.
"""

import logging
import os
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, NamedTuple, Optional, Tuple

from pointdo.lines import (
    HeaderItem,
    TaskItem,
    add_marker,
    classify,
    find_first_unchecked_task,
    find_markers,
    find_next_unchecked_task,
    header_level,
    is_header,
    is_task,
    mark_task_complete,
    remove_marker,
    uncheck_task,
)
from pointdo.repository import TaskRepository

logger = logging.getLogger(__name__)

COMPLETED_MESSAGE = "Task marked as complete"

# (file, line index) of a task
Location = Tuple[Path, int]


class TaskStatus(str, Enum):
    """Outcome of advancing the marker."""

    NEXT_TASK_FOUND = "NEXT_TASK_FOUND"
    ALL_COMPLETE = "ALL_COMPLETE"
    NO_TASKS = "NO_TASKS"
    ERROR = "ERROR"


class TaskStats(NamedTuple):
    """Counts of task lines in a file."""

    total: int
    completed: int
    remaining: int

    @property
    def percent_complete(self) -> float:
        return self.completed / self.total * 100 if self.total > 0 else 0.0

    def __str__(self) -> str:
        return get_summary(self)


@dataclass
class NextTaskResult:
    """What `process_next_task_state` did and what to show for it.

    Attributes:
        status: Outcome of the advance
        summary: Stats summary of the displayed file (zeros for NO_TASKS)
        message: Extra message, e.g. when a task was just completed
        display_file_path: File holding the displayed (or completed) task
        task_index: Line index of the marked task (NEXT_TASK_FOUND only)
        display_task_lines: Lines of the task's block, trailing blanks trimmed
        display_context_headers: Up to two enclosing headers, "outer - inner"
    """

    status: TaskStatus
    summary: str = ""
    message: Optional[str] = None
    display_file_path: Optional[Path] = None
    task_index: Optional[int] = None
    display_task_lines: List[str] = field(default_factory=list)
    display_context_headers: str = ""


@dataclass
class TaskFileSummary:
    """Summary of one configured task file, for status and reset listings."""

    file_path: Path
    relative_path: str
    summary: str
    exists: bool
    error: Optional[str] = None
    disabled: bool = False


# =============================================================================
# Pure helpers
# =============================================================================


def get_task_stats(lines: List[str]) -> TaskStats:
    """Count checked and unchecked task lines; everything else is ignored."""
    completed = 0
    remaining = 0
    for line in lines:
        item = classify(line)
        if isinstance(item, TaskItem):
            if item.checked:
                completed += 1
            else:
                remaining += 1
    return TaskStats(completed + remaining, completed, remaining)


def get_summary(stats: TaskStats) -> str:
    """Format stats like `Total: 10 task(s) | Completed: 5 (50.0%) | Remaining: 5`.

    The percentage rounds halves up (1 of 16 is 6.3%).
    """
    percent = Decimal(stats.percent_complete).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return (
        f"Total: {stats.total} task(s) | "
        f"Completed: {stats.completed} ({percent}%) | "
        f"Remaining: {stats.remaining}"
    )


def get_context_headers(lines: List[str], task_index: int) -> str:
    """Return the two nearest headers above a task, joined as "outer - inner"."""
    if not 0 <= task_index < len(lines):
        return ""

    headers: List[str] = []
    for i in range(task_index - 1, -1, -1):
        item = classify(lines[i])
        if isinstance(item, HeaderItem):
            headers.insert(0, item.text)
            if len(headers) == 2:
                break
    return " - ".join(headers)


def get_task_output_range(lines: List[str], task_index: int) -> Tuple[int, int]:
    """Determine the [start, end) line range to display for a task.

    The block starts at the nearest header above the task (or the top of the
    file) and ends before the next task, or the next header at the same or
    a higher level than that one.
    """
    if not 0 <= task_index < len(lines):
        return 0, 0

    start = 0
    governing_level = 0
    for i in range(task_index - 1, -1, -1):
        level = header_level(lines[i])
        if level > 0:
            start = i
            governing_level = level
            break

    end = len(lines)
    for i in range(task_index + 1, len(lines)):
        line = lines[i]
        if is_task(line) or (is_header(line) and header_level(line) <= governing_level):
            end = i
            break

    return start, end


def get_display_lines(lines: List[str], task_index: int) -> List[str]:
    """Lines of a task's display block with trailing blank lines removed."""
    start, end = get_task_output_range(lines, task_index)
    block = lines[start:end]
    while block and not block[-1].strip():
        block.pop()
    return block


def uncheck_tasks_in_lines(lines: List[str]) -> Tuple[List[str], int]:
    """Uncheck every checked task.

    Returns:
        (modified_lines, reset_count)
    """
    modified = [uncheck_task(line) for line in lines]
    reset_count = sum(1 for old, new in zip(lines, modified) if old != new)
    return modified, reset_count


def iter_wraparound(count: int, start: int) -> Iterator[int]:
    """Yield the indices after `start` in a list of `count`, wrapping around.

    `start` itself is not yielded: iter_wraparound(4, 2) -> 3, 0, 1
    """
    for offset in range(1, count):
        yield (start + offset) % count


# =============================================================================
# Engine
# =============================================================================


class TaskEngine:
    """Runs task operations against files through a TaskRepository."""

    def __init__(self, repository: Optional[TaskRepository] = None):
        self.repository = repository or TaskRepository()

    def reset_task_file(self, path: Path) -> int:
        """Uncheck all tasks in a file; the file is only written if something changed.

        Raises:
            TaskFileNotFoundError: if the file does not exist
        """
        lines = self.repository.read_lines(path)
        modified, reset_count = uncheck_tasks_in_lines(lines)
        if reset_count > 0:
            self.repository.write_lines(path, modified)
        return reset_count

    def get_task_file_summaries(
        self, paths: List[Path], cwd: Optional[Path] = None
    ) -> List[TaskFileSummary]:
        """Summarize each file; missing or unreadable ones are marked disabled."""
        cwd = cwd or Path.cwd()
        summaries = []
        for path in paths:
            relative = os.path.relpath(path, cwd)
            if not self.repository.exists(path):
                summaries.append(
                    TaskFileSummary(
                        file_path=path,
                        relative_path=relative,
                        summary="File not found",
                        exists=False,
                        error="File not found",
                        disabled=True,
                    )
                )
                continue
            try:
                lines = self.repository.read_lines(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Could not read file {relative} to generate summary: {e}")
                summaries.append(
                    TaskFileSummary(
                        file_path=path,
                        relative_path=relative,
                        summary="(Error reading file)",
                        exists=True,
                        error=str(e),
                        disabled=True,
                    )
                )
                continue

            if lines == [""]:
                summary = "(Empty file)"
            else:
                summary = get_summary(get_task_stats(lines))
            summaries.append(
                TaskFileSummary(file_path=path, relative_path=relative, summary=summary, exists=True)
            )
        return summaries

    def process_next_task_state(self, paths: List[Path]) -> NextTaskResult:
        """Advance the marker across an ordered list of task files.

        Writes back every file it changes. When several markers are found
        (e.g. after manual edits) the first one in file order is the current
        task and the others are removed.
        """
        order = list(dict.fromkeys(Path(p) for p in paths))
        files: Dict[Path, List[str]] = {}
        total_tasks = 0
        read_error = False
        target: Optional[Location] = None
        markers: List[Location] = []

        for path in order:
            try:
                lines = self.repository.read_lines(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Error reading task file {path}: {e}")
                read_error = True
                continue

            files[path] = lines
            total_tasks += get_task_stats(lines).total
            if target is None:
                index = find_first_unchecked_task(lines)
                if index is not None:
                    target = (path, index)
            markers.extend((path, i) for i in find_markers(lines))

        changed: List[Path] = []

        def update(path: Path, lines: List[str]) -> None:
            files[path] = lines
            if path not in changed:
                changed.append(path)

        current = markers[0] if markers else None
        for path, index in markers[1:]:
            logger.warning(f"Removing extra marker in {path} (line {index + 1})")
            update(path, remove_marker(files[path], index))

        if total_tasks == 0 and not read_error:
            return NextTaskResult(
                status=TaskStatus.NO_TASKS, summary=get_summary(TaskStats(0, 0, 0))
            )

        if target is None:
            if read_error:
                return NextTaskResult(
                    status=TaskStatus.ERROR,
                    message="Could not determine next task due to file read errors.",
                )
            if current is not None:
                update(current[0], remove_marker(files[current[0]], current[1]))
                final_path = current[0]
            else:
                final_path = list(files)[-1]
            error = self._flush(files, changed)
            if error:
                return error
            return NextTaskResult(
                status=TaskStatus.ALL_COMPLETE,
                summary=get_summary(get_task_stats(files[final_path])),
                display_file_path=final_path,
            )

        message: Optional[str] = None
        display = target
        target_path, target_index = target

        if current is None:
            update(target_path, add_marker(files[target_path], target_index))
        elif current != target:
            current_path, current_index = current
            update(current_path, remove_marker(files[current_path], current_index))
            update(target_path, add_marker(files[target_path], target_index))
        else:
            lines = remove_marker(files[target_path], target_index)
            lines[target_index] = mark_task_complete(lines[target_index])
            update(target_path, lines)
            message = COMPLETED_MESSAGE

            following = self._find_next_unchecked(order, files, target_path, target_index)
            if following is None:
                error = self._flush(files, changed)
                if error:
                    return error
                return NextTaskResult(
                    status=TaskStatus.ALL_COMPLETE,
                    summary=get_summary(get_task_stats(files[target_path])),
                    message=message,
                    display_file_path=target_path,
                )
            update(following[0], add_marker(files[following[0]], following[1]))
            display = following

        error = self._flush(files, changed)
        if error:
            return error

        display_path, display_index = display
        lines = files[display_path]
        return NextTaskResult(
            status=TaskStatus.NEXT_TASK_FOUND,
            summary=get_summary(get_task_stats(lines)),
            message=message,
            display_file_path=display_path,
            task_index=display_index,
            display_task_lines=get_display_lines(lines, display_index),
            display_context_headers=get_context_headers(lines, display_index),
        )

    @staticmethod
    def _find_next_unchecked(
        order: List[Path], files: Dict[Path, List[str]], path: Path, index: int
    ) -> Optional[Location]:
        """Find the unchecked task following a just-completed one.

        Looks further down the same file first, then at every other readable
        file once, in configured order starting after the current file.
        """
        following = find_next_unchecked_task(files[path], index)
        if following is not None:
            return path, following

        for i in iter_wraparound(len(order), order.index(path)):
            lines = files.get(order[i])
            if lines is None:
                continue
            first = find_first_unchecked_task(lines)
            if first is not None:
                return order[i], first
        return None

    def _flush(self, files: Dict[Path, List[str]], changed: List[Path]) -> Optional[NextTaskResult]:
        """Write changed files in order; return an ERROR result if a write fails."""
        try:
            for path in changed:
                self.repository.write_lines(path, files[path])
        except OSError as e:
            logger.error(f"Error processing next task state: {e}")
            return NextTaskResult(
                status=TaskStatus.ERROR,
                message=f"Error processing next task state: {e}",
            )
        finally:
            changed.clear()
        return None
