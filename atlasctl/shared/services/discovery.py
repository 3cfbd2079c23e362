"""Project discovery — find project descriptor files under workspace roots.

Searches each root directory (non-recursively) plus any configured
additional paths for ``*.project.json5`` / ``*.project.json`` files.
Relative additional paths are resolved against every root; absolute ones
are attributed to the root that contains them.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from atlasctl.engine.errors import NoWorkspaceError
from atlasctl.engine.models import (
    PROJECT_FILE_SUFFIXES,
    ProjectFile,
    WorkspaceRoot,
    path_key,
    path_segments,
)

logger = logging.getLogger(__name__)


def roots_from_paths(paths: Iterable[str | Path]) -> list[WorkspaceRoot]:
    """Build workspace roots named after their directory, dropping repeats."""
    roots: list[WorkspaceRoot] = []
    seen: set[str] = set()
    for raw in paths:
        resolved = Path(raw).expanduser().resolve()
        root = WorkspaceRoot(name=resolved.name or str(resolved), path=str(resolved))
        if root.key in seen:
            continue
        seen.add(root.key)
        roots.append(root)
    return roots


def _root_containing(path: Path, roots: list[WorkspaceRoot]) -> WorkspaceRoot | None:
    target = path_segments(path_key(str(path)))
    for root in roots:
        root_segments = path_segments(root.key)
        if target[: len(root_segments)] == root_segments:
            return root
    return None


def _search_directory(
    root: WorkspaceRoot,
    directory: Path,
    project_files: list[ProjectFile],
    found: set[str],
) -> None:
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        logger.debug("Could not search directory %s: %s", directory, exc)
        return

    for entry in entries:
        if not entry.name.endswith(PROJECT_FILE_SUFFIXES):
            continue
        try:
            if not entry.is_file():
                continue
        except OSError:
            continue
        project_file = ProjectFile(
            name=entry.name,
            workspace_folder_name=root.name,
            path=str(entry.absolute()),
        )
        if project_file.key in found:
            continue
        found.add(project_file.key)
        project_files.append(project_file)


def find_project_files(
    roots: Iterable[WorkspaceRoot],
    additional_paths: Iterable[str] = (),
) -> list[ProjectFile]:
    """Discover project files.

    Raises:
        NoWorkspaceError: when no roots are given.
    """
    roots = list(roots)
    if not roots:
        raise NoWorkspaceError()
    additional_paths = [p for p in additional_paths if p and p.strip()]

    project_files: list[ProjectFile] = []
    found: set[str] = set()

    for root in roots:
        _search_directory(root, Path(root.path), project_files, found)

        for extra in additional_paths:
            extra_path = Path(extra).expanduser()
            if extra_path.is_absolute():
                context = _root_containing(extra_path, roots) or root
                search_dir = extra_path
            else:
                context = root
                search_dir = Path(root.path) / extra_path
            _search_directory(context, search_dir, project_files, found)

    logger.debug(
        "Discovered %d project file(s) under %d root(s)",
        len(project_files), len(roots),
    )
    return project_files
