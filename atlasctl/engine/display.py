"""Project display names — unique, policy-conformant labels for listings.

Pure functions only: no I/O, no shared state. Given the discovered
project files, the workspace roots they were found under, a
DisplayPolicy and a maximum length, produce a ``key -> ProjectDisplayInfo``
mapping that is total over the (de-duplicated) input and deterministic.

Under AS_NEEDED and ALWAYS colliding names are escalated to longer
forms before truncation:

1. external projects that collide at ``parentDir/fileName`` share one
   suffix depth per group (smallest depth that separates all members);
2. workspace projects whose relative paths collide across roots are
   prefixed with their workspace folder name;
3. anything still colliding is widened by the same shared-depth suffix
   search until names are unique or every member shows its full path.

NEVER renders bare file names and may collide.
"""
from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from .models import (
    DisplayPolicy,
    ProjectDisplayInfo,
    ProjectFile,
    WorkspaceRoot,
    path_segments,
)

DEFAULT_MAX_LENGTH = 70
MIN_MAX_LENGTH = 4
ELLIPSIS = "..."
EXTERNAL_LABEL = "external"


# ── Classification ───────────────────────────────────────────────


def containing_root(
    project_file: ProjectFile,
    roots: Iterable[WorkspaceRoot],
) -> WorkspaceRoot | None:
    """Return the deepest root that strictly contains the project file."""
    file_segments = path_segments(project_file.key)
    best: WorkspaceRoot | None = None
    best_depth = -1
    for root in roots:
        root_segments = path_segments(root.key)
        depth = len(root_segments)
        if depth >= len(file_segments):
            continue
        if file_segments[:depth] == root_segments and depth > best_depth:
            best = root
            best_depth = depth
    return best


def is_external_project(
    project_file: ProjectFile,
    roots: Iterable[WorkspaceRoot],
) -> bool:
    """True when the project lies outside every known root."""
    return containing_root(project_file, roots) is None


def workspace_folder_label(
    project_file: ProjectFile,
    roots: Iterable[WorkspaceRoot],
) -> str:
    """Description column for menus: workspace folder name or "external"."""
    if is_external_project(project_file, roots):
        return EXTERNAL_LABEL
    return project_file.workspace_folder_name


# ── Candidate forms ──────────────────────────────────────────────


def project_file_name(project_file: ProjectFile) -> str:
    return project_file.file_name


def project_relative_path(
    project_file: ProjectFile,
    roots: Iterable[WorkspaceRoot],
) -> str:
    """Root-relative path for workspace projects, ``parent/file`` otherwise."""
    segments = path_segments(project_file.path)
    root = containing_root(project_file, roots)
    if root is None:
        return "/".join(segments[-2:])
    return "/".join(segments[len(path_segments(root.path)):])


def format_project_display_name(
    project_file: ProjectFile,
    policy: DisplayPolicy = DisplayPolicy.AS_NEEDED,
    roots: Iterable[WorkspaceRoot] = (),
) -> str:
    """Display name for a single project, e.g. a terminal title.

    Collisions cannot be detected for one project, so AS_NEEDED
    behaves like NEVER here.
    """
    if policy == DisplayPolicy.ALWAYS:
        return project_relative_path(project_file, roots)
    if policy in (DisplayPolicy.NEVER, DisplayPolicy.AS_NEEDED):
        return project_file_name(project_file)
    raise ValueError(f"Unknown display policy: {policy!r}")


# ── Disambiguation ───────────────────────────────────────────────


def shared_suffix_names(
    group: list[ProjectFile],
    start_depth: int = 2,
) -> tuple[dict[str, str], int]:
    """Smallest shared suffix depth that makes every member unique.

    Returns ``(key -> name, depth)``. When no depth separates the group,
    every member falls back to its full path and the depth returned is
    the longest segment count in the group.
    """
    segments = {pf.key: path_segments(pf.path) for pf in group}
    max_depth = max((len(s) for s in segments.values()), default=0)
    for depth in range(start_depth, max_depth + 1):
        candidates = {
            key: "/".join(segs[-depth:]) for key, segs in segments.items()
        }
        if len(set(candidates.values())) == len(candidates):
            return candidates, depth
    return {key: "/".join(segs) for key, segs in segments.items()}, max_depth


def _collision_groups(
    projects: list[ProjectFile],
    names: dict[str, str],
) -> list[list[ProjectFile]]:
    groups: dict[str, list[ProjectFile]] = {}
    for pf in projects:
        groups.setdefault(names[pf.key], []).append(pf)
    return [group for group in groups.values() if len(group) > 1]


def _unique_projects(project_files: Iterable[ProjectFile]) -> list[ProjectFile]:
    """Drop repeated paths; the first occurrence keeps its metadata."""
    seen: set[str] = set()
    unique: list[ProjectFile] = []
    for pf in project_files:
        if pf.key in seen:
            continue
        seen.add(pf.key)
        unique.append(pf)
    return unique


def _as_needed_names(
    projects: list[ProjectFile],
    roots: tuple[WorkspaceRoot, ...],
) -> dict[str, str]:
    file_name_counts = Counter(project_file_name(pf) for pf in projects)
    external_keys = {
        pf.key for pf in projects if is_external_project(pf, roots)
    }

    resolved: dict[str, str] = {}
    external_groups: dict[str, list[ProjectFile]] = {}
    for pf in projects:
        if pf.key in external_keys:
            external_groups.setdefault(
                project_relative_path(pf, roots), []
            ).append(pf)
    for group in external_groups.values():
        if len(group) > 1:
            group_names, _ = shared_suffix_names(group, start_depth=2)
            resolved.update(group_names)

    names: dict[str, str] = {}
    for pf in projects:
        if pf.key in resolved:
            names[pf.key] = resolved[pf.key]
            continue
        file_name = project_file_name(pf)
        if file_name_counts[file_name] > 1 or pf.key in external_keys:
            names[pf.key] = project_relative_path(pf, roots)
        else:
            names[pf.key] = file_name
    return names


def _resolve_collisions(
    projects: list[ProjectFile],
    names: dict[str, str],
    roots: tuple[WorkspaceRoot, ...],
) -> dict[str, str]:
    names = dict(names)

    for group in _collision_groups(projects, names):
        if any(is_external_project(pf, roots) for pf in group):
            continue
        prefixed = {
            pf.key: f"{pf.workspace_folder_name}/{names[pf.key]}"
            for pf in group
        }
        if len(set(prefixed.values())) == len(prefixed):
            names.update(prefixed)

    depths: dict[str, int] = {}
    max_rounds = max(
        (len(path_segments(pf.path)) for pf in projects), default=0
    ) + 1
    for _ in range(max_rounds):
        groups = _collision_groups(projects, names)
        if not groups:
            break
        for group in groups:
            current = max(
                depths.get(pf.key, len(names[pf.key].split("/")))
                for pf in group
            )
            group_names, depth = shared_suffix_names(
                group, start_depth=max(2, current + 1)
            )
            names.update(group_names)
            for pf in group:
                depths[pf.key] = depth
    return names


# ── Truncation ───────────────────────────────────────────────────


def truncate_display_name(
    display_name: str,
    max_length: int = DEFAULT_MAX_LENGTH,
) -> ProjectDisplayInfo:
    """Shorten a name from the left, keeping the file name intact.

    Only when the file name alone does not fit is the file name itself
    cut (from the right). Applying this twice with the same maximum is
    a no-op on the second pass.
    """
    max_length = max(max_length, MIN_MAX_LENGTH)
    if len(display_name) <= max_length:
        return ProjectDisplayInfo(display_name, False, display_name)

    segments = display_name.split("/")
    file_name = segments[-1]
    budget = max_length - len(ELLIPSIS)

    if len(file_name) > budget:
        return ProjectDisplayInfo(
            file_name[:budget] + ELLIPSIS, True, display_name
        )

    result = file_name
    for segment in reversed(segments[:-1]):
        piece = segment + "/"
        if len(result) + len(piece) > budget:
            return ProjectDisplayInfo(ELLIPSIS + result, True, display_name)
        result = piece + result

    return ProjectDisplayInfo(result, False, display_name)


# ── Entry point ──────────────────────────────────────────────────


def format_project_display_names(
    project_files: Iterable[ProjectFile],
    policy: DisplayPolicy = DisplayPolicy.AS_NEEDED,
    max_length: int = DEFAULT_MAX_LENGTH,
    roots: Iterable[WorkspaceRoot] = (),
) -> dict[str, ProjectDisplayInfo]:
    """Resolve display names for every project, keyed by ``ProjectFile.key``.

    Args:
        project_files: Discovered projects. Repeated paths count once.
        policy: NEVER, AS_NEEDED or ALWAYS.
        max_length: Truncation limit applied after disambiguation.
        roots: Known workspace roots; projects outside all of them are
            external.

    Returns:
        Mapping in input order. Empty input gives an empty mapping.
    """
    projects = _unique_projects(project_files)
    roots = tuple(roots)

    if policy == DisplayPolicy.NEVER:
        names = {pf.key: project_file_name(pf) for pf in projects}
    elif policy == DisplayPolicy.ALWAYS:
        names = {pf.key: project_relative_path(pf, roots) for pf in projects}
        names = _resolve_collisions(projects, names, roots)
    elif policy == DisplayPolicy.AS_NEEDED:
        names = _as_needed_names(projects, roots)
        names = _resolve_collisions(projects, names, roots)
    else:
        raise ValueError(f"Unknown display policy: {policy!r}")

    return {
        pf.key: truncate_display_name(names[pf.key], max_length)
        for pf in projects
    }
