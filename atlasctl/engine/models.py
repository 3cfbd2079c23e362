"""Core data models for project resolution and session tracking.

All dataclasses, enums, and path helpers. Single source of truth
to avoid circular imports.
"""
from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass
from enum import Enum

PROJECT_FILE_SUFFIXES = (".project.json5", ".project.json")


def normalize_path(path: str) -> str:
    """Collapse ``..``/``.`` segments and fold separators to ``/``."""
    if not path:
        return path
    return posixpath.normpath(str(path).replace("\\", "/"))


def path_key(path: str) -> str:
    """Canonical comparison key for a filesystem path.

    Case-folded where the platform filesystem is case-insensitive,
    always forward-slash separated.
    """
    return os.path.normcase(normalize_path(path)).replace("\\", "/")


def path_segments(path: str) -> list[str]:
    """Split a normalized path into its non-empty segments."""
    return [segment for segment in normalize_path(path).split("/") if segment]


class DisplayPolicy(str, Enum):
    """How much of a project's path to show in listings."""
    NEVER = "never"
    AS_NEEDED = "asNeeded"
    ALWAYS = "always"


class SessionState(str, Enum):
    """Per-project session states. See lifecycle.py for transition rules."""
    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"


@dataclass(frozen=True)
class WorkspaceRoot:
    """A known root directory that project files are discovered under."""
    name: str
    path: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", normalize_path(self.path))

    @property
    def key(self) -> str:
        return path_key(self.path)


@dataclass(frozen=True)
class ProjectFile:
    """One discovered project descriptor.

    ``path`` is stored normalized; ``key`` is the identity used by the
    resolver and the session registry.
    """
    name: str
    workspace_folder_name: str
    path: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", normalize_path(self.path))

    @property
    def key(self) -> str:
        return path_key(self.path)

    @property
    def directory(self) -> str:
        return posixpath.dirname(self.path)

    @property
    def file_name(self) -> str:
        return posixpath.basename(self.path)


@dataclass(frozen=True)
class ProjectDisplayInfo:
    """Resolved presentation record for one project path."""
    display_name: str
    was_truncated: bool
    original_name: str
