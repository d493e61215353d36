"""Configuration management for pointdo.

Two independent YAML documents are kept:
- local: `pointdo.yaml` in the project root (found by walking up from cwd)
- global: `~/.pointdo/pointdo.yaml` (directory overridable via POINTDO_HOME)

Task paths are project-specific and the update timestamp is machine-specific,
so the scopes are never merged into one map: the local document, when one
exists, is used as a whole, otherwise the global one is.

Document layout:

    tasks:
      all: [tasks.md, notes/later.md]
      primary: tasks.md
      paste: tasks.md
    updates:
      lastUpdateCheckTimestamp: 0

Bad user input never raises: malformed YAML, a non-mapping document or a
field of the wrong shape falls back to the defaults for that field (or the
whole document) with a logged warning. Keys pointdo does not manage are kept
when the document is rewritten.
"""

import copy
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from pointdo.errors import ConfigError, ConfigWriteError, EmptyPathListError
from pointdo.fs import FileSystem, LocalFileSystem

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "pointdo.yaml"
GLOBAL_DIRNAME = ".pointdo"
DEFAULT_TASK_FILE = "tasks.md"
# Parent directories inspected when looking for a local pointdo.yaml
MAX_SEARCH_DEPTH = 10


class Scope(str, Enum):
    LOCAL = "local"
    GLOBAL = "global"


def get_global_dir(home: Optional[Path] = None) -> Path:
    """Get the global config directory from environment or default."""
    if path := os.environ.get("POINTDO_HOME"):
        return Path(path).expanduser()
    return (home or Path.home()) / GLOBAL_DIRNAME


def _fallback_to_default(model: type, value: Any, handler, info: ValidationInfo) -> Any:
    """Validate a field, using its default (with a warning) when invalid."""
    try:
        return handler(value)
    except ValidationError as e:
        default = model.model_fields[info.field_name].get_default(call_default_factory=True)
        logger.warning(
            f"Malformed config field '{info.field_name}' ({e.error_count()} error(s)), "
            f"using default: {default!r}"
        )
        return default


class TasksConfig(BaseModel):
    """Task file settings.

    Attributes:
        all: Ordered task files (relative paths resolve against the scope's base dir)
        primary: Primary task file, the first of `all` after `set path`
        paste: Task file that pasted content goes to
    """

    all: List[StrictStr] = Field(default_factory=lambda: [DEFAULT_TASK_FILE])
    primary: StrictStr = Field(default=DEFAULT_TASK_FILE)
    paste: StrictStr = Field(default=DEFAULT_TASK_FILE)

    @field_validator("all", "primary", "paste", mode="wrap")
    @classmethod
    def fallback(cls, v, handler, info: ValidationInfo):
        return _fallback_to_default(cls, v, handler, info)


class UpdatesConfig(BaseModel):
    """Update-check bookkeeping.

    Attributes:
        last_update_check_timestamp: Epoch millis of the last check (YAML key
            `lastUpdateCheckTimestamp`)
    """

    model_config = ConfigDict(populate_by_name=True)

    last_update_check_timestamp: StrictInt = Field(default=0, alias="lastUpdateCheckTimestamp")

    @field_validator("last_update_check_timestamp", mode="wrap")
    @classmethod
    def fallback(cls, v, handler, info: ValidationInfo):
        return _fallback_to_default(cls, v, handler, info)


class PointdoConfig(BaseModel):
    """One scope's configuration document, with defaults filled in."""

    tasks: TasksConfig = Field(default_factory=TasksConfig)
    updates: UpdatesConfig = Field(default_factory=UpdatesConfig)

    @field_validator("tasks", "updates", mode="wrap")
    @classmethod
    def fallback(cls, v, handler, info: ValidationInfo):
        return _fallback_to_default(cls, v, handler, info)

    @classmethod
    def from_document(cls, data: Any, source: str = "<config>") -> "PointdoConfig":
        """Build a config from a parsed YAML document, never raising."""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            logger.warning(f"Config {source} is not a mapping, using defaults")
            return cls()
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Invalid config {source}, using defaults: {e}")
            return cls()

    def to_document(self, base: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Merge managed fields into a copy of an existing raw document.

        Unknown top-level and nested keys in `base` are preserved.
        """
        doc = copy.deepcopy(base) if isinstance(base, dict) else {}
        for section, model in (("tasks", self.tasks), ("updates", self.updates)):
            existing = doc.get(section)
            merged = dict(existing) if isinstance(existing, dict) else {}
            merged.update(model.model_dump(by_alias=True))
            doc[section] = merged
        return doc


def _update_field(key: str) -> str:
    """Map an updates key (YAML alias or attribute name) to the attribute name."""
    for name, info in UpdatesConfig.model_fields.items():
        if key in (name, info.alias):
            return name
    raise ConfigError(f"Unknown updates key: {key}")


class ConfigResolver:
    """Discovers, loads, caches and writes the local and global config.

    Constructed once per process (or per test) and passed to whoever needs
    it. Documents are loaded lazily on first access and cached afterwards.

    Args:
        cwd: Directory the local search starts from (default: current dir)
        home: Home directory that global paths resolve against
        global_dir: Directory holding the global document
        fs: Filesystem implementation
    """

    def __init__(
        self,
        cwd: Optional[Path] = None,
        home: Optional[Path] = None,
        global_dir: Optional[Path] = None,
        fs: Optional[FileSystem] = None,
    ):
        self.fs: FileSystem = fs or LocalFileSystem()
        self.cwd = Path(os.path.abspath(cwd or Path.cwd()))
        self.home = Path(os.path.abspath(home or Path.home()))
        self.global_dir = Path(os.path.abspath(global_dir or get_global_dir(self.home)))

        self._root_searched = False
        self._project_root: Optional[Path] = None
        self._configs: Dict[Scope, PointdoConfig] = {}
        self._raw: Dict[Scope, Dict[str, Any]] = {}

    # -- discovery -----------------------------------------------------------

    def find_local_root(self, start_dir: Path) -> Optional[Path]:
        """Find the nearest directory containing pointdo.yaml.

        Searches upwards from start_dir, stopping at the filesystem root or
        after MAX_SEARCH_DEPTH directories.
        """
        current = Path(os.path.abspath(start_dir))
        for _ in range(MAX_SEARCH_DEPTH):
            if self.fs.exists(current / CONFIG_FILENAME):
                return current
            if current.parent == current:
                break
            current = current.parent
        return None

    @property
    def project_root(self) -> Optional[Path]:
        """Directory holding the local pointdo.yaml, if any."""
        if not self._root_searched:
            self._project_root = self.find_local_root(self.cwd)
            self._root_searched = True
            if self._project_root:
                logger.debug(f"Using local config in {self._project_root}")
        return self._project_root

    def _adopt_cwd_as_root(self) -> Path:
        self._project_root = self.cwd
        self._root_searched = True
        self._configs.pop(Scope.LOCAL, None)
        self._raw.pop(Scope.LOCAL, None)
        return self.cwd

    def _writable_path(self, scope: Scope) -> Path:
        """Document a scope is written to; without a local one, cwd becomes the root."""
        if scope == Scope.GLOBAL:
            return self.global_config_path
        root = self.project_root or self._adopt_cwd_as_root()
        return root / CONFIG_FILENAME

    @property
    def local_config_path(self) -> Optional[Path]:
        root = self.project_root
        return root / CONFIG_FILENAME if root else None

    @property
    def global_config_path(self) -> Path:
        return self.global_dir / CONFIG_FILENAME

    @property
    def effective_scope(self) -> Scope:
        """Local when a local document exists, global otherwise."""
        return Scope.LOCAL if self.project_root else Scope.GLOBAL

    def config_path(self, scope: Scope) -> Optional[Path]:
        return self.global_config_path if scope == Scope.GLOBAL else self.local_config_path

    def base_dir(self, scope: Scope) -> Path:
        """Directory relative task paths of a scope resolve against."""
        if scope == Scope.LOCAL and self.project_root:
            return self.project_root
        return self.home

    # -- loading -------------------------------------------------------------

    def _read_document(self, path: Path) -> Dict[str, Any]:
        if not self.fs.exists(path):
            return {}
        try:
            data = yaml.safe_load(self.fs.read_text(path))
        except yaml.YAMLError as e:
            logger.warning(f"Could not parse {path}, using defaults: {e}")
            return {}
        except OSError as e:
            logger.warning(f"Could not read {path}, using defaults: {e}")
            return {}
        if data is None:
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Config {path} is not a mapping, using defaults")
            return {}
        return data

    def load(self, scope: Scope) -> PointdoConfig:
        """Load (and cache) a scope's configuration with defaults applied."""
        if scope not in self._configs:
            path = self.config_path(scope)
            raw = self._read_document(path) if path else {}
            self._raw[scope] = raw
            self._configs[scope] = PointdoConfig.from_document(raw, source=str(path))
        return self._configs[scope]

    def effective(self) -> PointdoConfig:
        return self.load(self.effective_scope)

    # -- task paths ----------------------------------------------------------

    @staticmethod
    def _resolve(base: Path, path: str) -> Path:
        return Path(os.path.normpath(os.path.join(base, os.path.expanduser(path))))

    def get_task_file_paths(self, global_: bool = False) -> List[Path]:
        """Get the ordered task files as absolute paths.

        Args:
            global_: Read the global document even if a local one exists

        Returns:
            Resolved paths; never empty (falls back to tasks.md)
        """
        scope = Scope.GLOBAL if global_ else self.effective_scope
        raw_paths = [p.strip() for p in self.load(scope).tasks.all if p.strip()]
        if not raw_paths:
            raw_paths = [DEFAULT_TASK_FILE]
        base = self.base_dir(scope)
        return [self._resolve(base, p) for p in raw_paths]

    def get_paste_target_path(self) -> Path:
        """Get the file pasted content goes to.

        Fallback order: tasks.paste, tasks.primary, tasks.md.
        """
        tasks = self.effective().tasks
        base = self.base_dir(self.effective_scope)
        for candidate in (tasks.paste, tasks.primary):
            if candidate.strip():
                return self._resolve(base, candidate.strip())
        return self._resolve(base, DEFAULT_TASK_FILE)

    def set_task_file_paths(
        self,
        paths: List[str],
        global_: bool = False,
        paste: Optional[str] = None,
    ) -> Path:
        """Store the ordered task files (and paste target) in one scope.

        The first path becomes the primary one. Without a paste override the
        paste target is the primary path. A local write with no local
        document found creates one in the working directory.

        Returns:
            Path of the document written

        Raises:
            EmptyPathListError: if paths is empty (nothing is written)
            ConfigWriteError: if the document cannot be written
        """
        if not paths:
            raise EmptyPathListError()
        paths = [str(p) for p in paths]

        scope = Scope.GLOBAL if global_ else Scope.LOCAL
        target = self._writable_path(scope)
        config = self.load(scope).model_copy(deep=True)
        config.tasks.all = list(paths)
        config.tasks.primary = paths[0]
        config.tasks.paste = paste.strip() if paste and paste.strip() else paths[0]

        self._save(scope, target, config)
        logger.info(f"Updated {scope.value} task paths in {target}")
        return target

    def init_local_config(self) -> Path:
        """Create pointdo.yaml in the working directory, seeded from global.

        An existing local document in the working directory is overwritten.
        """
        seed = self.load(Scope.GLOBAL).model_copy(deep=True)
        self._adopt_cwd_as_root()
        target = self.cwd / CONFIG_FILENAME
        self._raw[Scope.LOCAL] = {}
        self._save(Scope.LOCAL, target, seed)
        return target

    # -- updates section -----------------------------------------------------

    def get_update_value(self, key: str, default: Any = None, scope: Scope = Scope.GLOBAL) -> Any:
        """Read a value from a scope's `updates` section."""
        value = getattr(self.load(scope).updates, _update_field(key))
        return default if value is None else value

    def set_update_value(self, key: str, value: Any, scope: Scope = Scope.GLOBAL) -> None:
        """Write a value into a scope's `updates` section.

        Raises:
            ConfigError: for an unknown key or a value of the wrong type
            ConfigWriteError: if the document cannot be written
        """
        name = _update_field(key)
        info = UpdatesConfig.model_fields[name]
        # metadata carries the Strict() marker of StrictInt
        field_type = Annotated[(info.annotation, *info.metadata)] if info.metadata else info.annotation
        try:
            value = TypeAdapter(field_type).validate_python(value)
        except ValidationError as e:
            raise ConfigError(f"Invalid value for updates.{key}: {value!r}") from e

        target = self._writable_path(scope)
        config = self.load(scope).model_copy(deep=True)
        setattr(config.updates, name, value)

        self._save(scope, target, config)

    # -- writing -------------------------------------------------------------

    def _save(self, scope: Scope, path: Path, config: PointdoConfig) -> None:
        doc = config.to_document(self._raw.get(scope))
        try:
            content = yaml.safe_dump(doc, sort_keys=False, default_flow_style=False, allow_unicode=True)
            self.fs.write_text(path, content)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to save configuration to {path}: {e}")
            raise ConfigWriteError(f"Failed to save configuration to {path}: {e}") from e

        self._configs[scope] = config
        self._raw[scope] = doc
        logger.debug(f"Wrote configuration to {path}")
