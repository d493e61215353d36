"""Command-line interface for pointdo.

Commands:
- next: complete the current task and point at the next one
- reset: uncheck every task in the configured files
- status: per-file progress summaries
- set path: choose the ordered task files
- init: create a local pointdo.yaml
- paste: write text from stdin into the paste target
"""

import logging
import os
import sys
from pathlib import Path
from typing import List, NoReturn

import click
from rich.console import Console
from rich.markup import escape
from tabulate import tabulate

from pointdo import __version__
from pointdo.config import CONFIG_FILENAME, DEFAULT_TASK_FILE, ConfigResolver, Scope
from pointdo.engine import NextTaskResult, TaskEngine, TaskStatus
from pointdo.errors import PointdoError, TaskFileNotFoundError
from pointdo.repository import PASTE_MODES, TaskRepository

logger = logging.getLogger(__name__)

console = Console()


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error: {escape(message)}[/]")
    sys.exit(1)


def _relative(config: ConfigResolver, path: Path) -> str:
    return os.path.relpath(path, config.cwd)


def _engine(config: ConfigResolver) -> TaskEngine:
    return TaskEngine(TaskRepository(config.fs))


def _print_verbatim(text: str) -> None:
    """Print file content as-is (no markup, emoji codes or highlighting)."""
    console.print(text, markup=False, emoji=False, highlight=False, soft_wrap=True)


def _print_result(config: ConfigResolver, result: NextTaskResult) -> None:
    if result.message and result.status != TaskStatus.ERROR:
        console.print(f"[green]✓ {escape(result.message)}[/]")

    if result.status == TaskStatus.ERROR:
        console.print(f"[red]Error: {escape(result.message or 'Unknown error')}[/]")
        return

    if result.status == TaskStatus.NO_TASKS:
        console.print("[yellow]No tasks found in the configured task files.[/]")
        _print_verbatim(result.summary)
        return

    location = f" (File: {_relative(config, result.display_file_path)})" if result.display_file_path else ""

    if result.status == TaskStatus.ALL_COMPLETE:
        console.print("[green]🎉 All tasks complete![/]")
        _print_verbatim(f"{result.summary}{location}")
        return

    _print_verbatim(f"{result.summary}{location}")
    console.print()
    if result.display_context_headers:
        console.print(f"[bold]{escape(result.display_context_headers)}[/]")
    for line in result.display_task_lines:
        _print_verbatim(line)


@click.group()
@click.version_option(__version__, prog_name="pointdo")
@click.option("-v", "--verbose", is_flag=True)
@click.option(
    "--home",
    "global_dir",
    type=click.Path(file_okay=False, resolve_path=True, path_type=Path),
    envvar="POINTDO_HOME",
    help="Directory holding the global pointdo.yaml (default: ~/.pointdo). Can also be set via POINTDO_HOME env var.",
)
@click.pass_context
def cli(ctx, verbose, global_dir):
    """Walk a pointer through markdown task lists."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=log_level)

    ctx.obj = ConfigResolver(global_dir=global_dir)


@cli.command("next")
@click.pass_obj
def next_(config: ConfigResolver):
    """Mark the current task done and point at the next one.

    Without a current task, the first unchecked task gets the pointer.
    """
    paths = config.get_task_file_paths()
    logger.debug(f"Task files: {[str(p) for p in paths]}")

    result = _engine(config).process_next_task_state(paths)
    _print_result(config, result)
    if result.status == TaskStatus.ERROR:
        sys.exit(1)


@cli.command()
@click.option(
    "--file",
    "files",
    multiple=True,
    type=click.Path(dir_okay=False),
    help="Reset only this configured task file (repeatable). Default: all of them.",
)
@click.pass_obj
def reset(config: ConfigResolver, files):
    """Uncheck every checked task.

    Explicitly selected files must be configured and exist. Without a
    selection, missing files are listed and skipped. A file that cannot be
    read or written does not stop the others; the command exits 1 at the end.
    """
    configured = config.get_task_file_paths()
    engine = _engine(config)

    selected: List[Path] = []
    for file in files:
        path = Path(os.path.abspath(file))
        if path not in configured:
            _fail(f"Not a configured task file: {file}")
        if not engine.repository.exists(path):
            _fail(f"Task file not found: {file}")
        selected.append(path)
    if not selected:
        selected = configured

    total = 0
    ignored: List[Path] = []
    failed: List[str] = []
    for path in selected:
        rel = _relative(config, path)
        try:
            count = engine.reset_task_file(path)
        except TaskFileNotFoundError:
            ignored.append(path)
            continue
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error resetting task file {path}: {e}")
            console.print(f"[red]Error: Could not reset {escape(rel)}: {escape(str(e))}[/]")
            failed.append(rel)
            continue
        _print_verbatim(f"{rel}: reset {count} task(s)")
        total += count

    if ignored:
        console.print("[yellow]Ignored missing files:[/]")
        for path in ignored:
            _print_verbatim(f"  {_relative(config, path)}")
    console.print(f"[green]✓ Reset {total} task(s) in total[/]")
    if failed:
        console.print(f"[red]Failed to reset {len(failed)} file(s): {escape(', '.join(failed))}[/]")
        sys.exit(1)


@cli.command()
@click.pass_obj
def status(config: ConfigResolver):
    """Show progress for each configured task file."""
    scope = config.effective_scope
    config_path = config.config_path(scope)
    if config_path and config.fs.exists(config_path):
        console.print(f"[dim]Config ({scope.value}): {escape(str(config_path))}[/]")
    else:
        console.print("[dim]Config: defaults (no pointdo.yaml found)[/]")

    summaries = _engine(config).get_task_file_summaries(config.get_task_file_paths(), cwd=config.cwd)
    rows = [[summary.relative_path, summary.summary] for summary in summaries]
    _print_verbatim(tabulate(rows, headers=["File", "Summary"], tablefmt="plain"))


@cli.group("set")
def set_():
    """Change configuration values."""


@set_.command("path")
@click.argument("values", nargs=-1)
@click.option("--global", "global_", is_flag=True, help="Write the global config instead of the local one.")
@click.option("--paste", help="Task file that pasted text goes to (default: the first path).")
@click.pass_obj
def set_path(config: ConfigResolver, values, global_, paste):
    """Set the ordered list of task files.

    The first path becomes the primary task file. Relative paths resolve
    against the project root (local) or the home directory (--global).
    """
    try:
        target = config.set_task_file_paths(list(values), global_=global_, paste=paste)
    except PointdoError as e:
        _fail(str(e))
    console.print(f"[green]✓ Set {len(values)} task file(s) in {escape(str(target))}[/]")


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite an existing pointdo.yaml without asking.")
@click.option("--path", "task_path", help="Primary task file (default: from the global config).")
@click.pass_obj
def init(config: ConfigResolver, force, task_path):
    """Create pointdo.yaml in the current directory.

    Settings are seeded from the global config. The primary task file is
    asked for unless given with --path or skipped with --force.
    """
    target = config.cwd / CONFIG_FILENAME
    if config.fs.exists(target) and not force:
        if not click.confirm(f"{target} already exists. Overwrite?", default=False):
            console.print("[yellow]Aborted, existing config kept[/]")
            return

    try:
        config.init_local_config()
        seeded = config.load(Scope.LOCAL).tasks.primary.strip() or DEFAULT_TASK_FILE
        if not task_path:
            task_path = seeded if force else click.prompt("Primary task file path", default=seeded)
        config.set_task_file_paths([task_path], paste=task_path)
    except PointdoError as e:
        _fail(str(e))

    repository = TaskRepository(config.fs)
    primary = config.get_task_file_paths()[0]
    if not repository.exists(primary):
        repository.write_lines(primary, [])
        console.print(f"[green]✓ Created {escape(_relative(config, primary))}[/]")
    console.print(f"[green]✓ Initialized {escape(str(target))}[/]")


@cli.command()
@click.option(
    "--mode",
    type=click.Choice(PASTE_MODES),
    help="Replace the file, add after its content, or add before it. Asked for when omitted.",
)
@click.option("--path", "override", type=click.Path(dir_okay=False), help="Paste into this file instead.")
@click.option(
    "--input",
    "source",
    type=click.File("r"),
    default="-",
    help="Read the text from this file instead of stdin.",
)
@click.pass_obj
def paste(config: ConfigResolver, mode, override, source):
    """Write text from stdin into the paste target file.

    Prompts (fallback target, mode) are answered before the pasted text is
    read, so piped input starts with the answers.
    """
    repository = TaskRepository(config.fs)
    path = config.get_paste_target_path()

    if override:
        override_path = Path(os.path.abspath(override))
        if repository.exists(override_path):
            path = override_path
        elif not click.confirm(
            f"{override} does not exist. Paste into {_relative(config, path)} instead?",
            default=False,
        ):
            console.print("[yellow]Aborted, nothing pasted[/]")
            return

    if mode is None:
        mode = click.prompt("Paste mode", type=click.Choice(PASTE_MODES))

    content = source.read()
    if not content.strip():
        console.print("[yellow]Nothing to paste (input was empty)[/]")
        return

    try:
        repository.write_content(path, content, mode)
    except OSError as e:
        _fail(f"Could not write {_relative(config, path)}: {e}")
    console.print(f"[green]✓ Pasted into {escape(_relative(config, path))} ({mode})[/]")


if __name__ == "__main__":
    cli()
