"""Project menu model — what a project picker shows, without rendering it.

Running sessions are listed first (selecting one stops it), followed by
the idle project files (selecting one starts it). Display names come
from the engine's display-name resolver over both sets together so that
running and idle entries are disambiguated against each other.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from atlasctl.engine.config import AtlasConfig
from atlasctl.engine.display import (
    format_project_display_names,
    is_external_project,
    workspace_folder_label,
)
from atlasctl.engine.models import (
    DisplayPolicy,
    ProjectDisplayInfo,
    ProjectFile,
    WorkspaceRoot,
)

RUNNING_ICON = "■"
START_ICON = "▶"
WARNING_ICON = "⚠"
DETAIL_SEPARATOR = " • "


class MenuAction(str, Enum):
    START = "start"
    STOP = "stop"
    STOP_AND_SERVE = "stopAndServe"
    REFRESH = "refresh"
    NONE = "none"


@dataclass
class MenuItem:
    """One row of the project menu."""
    label: str
    description: str = ""
    detail: str | None = None
    action: MenuAction = MenuAction.NONE
    # Secondary action (e.g. a button or alternate key on the row)
    alternate_action: MenuAction = MenuAction.NONE
    project_file: ProjectFile | None = None
    info: bool = False
    running: bool = False


def full_path_detail(
    project_file: ProjectFile,
    info: ProjectDisplayInfo | None,
    show_full_path: DisplayPolicy,
    roots: Iterable[WorkspaceRoot],
) -> str | None:
    """``Full path: ...`` detail line according to the show_full_path setting.

    AS_NEEDED shows it for external projects and for truncated names.
    """
    if show_full_path == DisplayPolicy.ALWAYS:
        return f"Full path: {project_file.path}"
    if show_full_path == DisplayPolicy.AS_NEEDED:
        if is_external_project(project_file, roots):
            return f"Full path: {project_file.path}"
        if info is not None and info.was_truncated:
            return f"Full path: {info.original_name}"
    return None


def build_project_menu(
    project_files: Iterable[ProjectFile],
    running: Iterable[ProjectFile],
    roots: Iterable[WorkspaceRoot],
    config: AtlasConfig,
    versions: Mapping[str, str | None] | None = None,
) -> list[MenuItem]:
    """Build the menu rows.

    Args:
        project_files: Discovered project files.
        running: Project files with an active session.
        roots: Workspace roots, for external detection.
        config: Display settings snapshot.
        versions: Optional ``key -> version`` map from install detection;
            a None version marks the tool as missing for that project.
            When omitted every project is treated as installed.
    """
    project_files = list(project_files)
    running = list(running)
    roots = tuple(roots)

    if not project_files and not running:
        return [
            MenuItem(
                label="No project files found",
                detail="This workspace contains no *.project.json or *.project.json5 files.",
                action=MenuAction.REFRESH,
                info=True,
            )
        ]

    display = format_project_display_names(
        [*project_files, *running],
        config.project_path_display,
        config.max_display_length,
        roots,
    )
    known_versions = sorted({v for v in (versions or {}).values() if v})

    items: list[MenuItem] = []
    shown: set[str] = set()

    for pf in running:
        if pf.key in shown:
            continue
        shown.add(pf.key)
        info = display.get(pf.key)
        items.append(
            MenuItem(
                label=f"{RUNNING_ICON} {info.display_name if info else pf.name}",
                description=workspace_folder_label(pf, roots),
                detail=full_path_detail(pf, info, config.show_full_path, roots),
                action=MenuAction.STOP,
                project_file=pf,
                running=True,
            )
        )

    any_running = bool(shown)
    for pf in project_files:
        if pf.key in shown:
            continue
        shown.add(pf.key)
        info = display.get(pf.key)
        installed = versions is None or versions.get(pf.key) is not None

        details: list[str] = []
        if not installed:
            details.append(f"Atlas not detected in {workspace_folder_label(pf, roots)}")
        elif versions is not None and len(known_versions) > 1:
            details.append(f"v{versions[pf.key]}")
        full_path = full_path_detail(pf, info, config.show_full_path, roots)
        if full_path:
            details.append(full_path)

        items.append(
            MenuItem(
                label=f"{START_ICON if installed else WARNING_ICON} "
                f"{info.display_name if info else pf.name}",
                description=workspace_folder_label(pf, roots),
                detail=DETAIL_SEPARATOR.join(details) or None,
                action=MenuAction.START if installed else MenuAction.NONE,
                alternate_action=(
                    MenuAction.STOP_AND_SERVE
                    if installed and any_running
                    else MenuAction.NONE
                ),
                project_file=pf,
            )
        )

    return items
