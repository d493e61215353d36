"""Exceptions raised by pointdo.

Malformed configuration is never raised: it is recovered with defaults and a
logged warning (see config.py). Everything here is fatal for the command
that triggered it.
"""

from pathlib import Path


class PointdoError(Exception):
    """Base class for all pointdo errors."""


class ConfigError(PointdoError):
    """Invalid request against the configuration (unknown key, bad value)."""


class ConfigWriteError(ConfigError):
    """Writing a configuration document failed."""


class EmptyPathListError(ConfigWriteError, ValueError):
    """Attempted to store an empty list of task file paths."""

    def __init__(self) -> None:
        super().__init__("Cannot set task paths: provided paths list is empty.")


class TaskFileNotFoundError(PointdoError, FileNotFoundError):
    """A task file that must be read does not exist."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Task file not found: {path}")
