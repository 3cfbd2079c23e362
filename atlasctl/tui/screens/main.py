"""Main screen — project menu, serve output, and status bar."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.text import Text
from textual import work
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import Footer, Header, OptionList
from textual.widgets.option_list import Option

from atlasctl.engine.config import AtlasConfig
from atlasctl.engine.display import containing_root, format_project_display_name
from atlasctl.engine.errors import AtlasError, InstallCheckError
from atlasctl.engine.models import ProjectFile, WorkspaceRoot, path_key
from atlasctl.engine.session_registry import SessionRegistry
from atlasctl.shared.menu import MenuAction, MenuItem, build_project_menu
from atlasctl.shared.services.discovery import find_project_files
from atlasctl.shared.services.install import detect_install, rokit_notice
from atlasctl.shared.services.serve_process import ServeProcessLauncher
from atlasctl.shared.services.workspace_state import WorkspaceState
from atlasctl.tui.widgets.serve_log import ServeLog
from atlasctl.tui.widgets.status_bar import StatusBar

logger = logging.getLogger(__name__)

MISSING_NOTICE_TOPIC = "atlas-missing"


class MainScreen(Screen):
    """Project picker with a live log of every running session."""

    BINDINGS = [
        ("s", "stop_all", "Stop all"),
        ("r", "resume_last", "Resume last"),
        ("x", "stop_and_serve", "Stop others & serve"),
        ("ctrl+r", "refresh", "Refresh"),
    ]

    DEFAULT_CSS = """
    MainScreen #main-body {
        height: 1fr;
    }
    MainScreen #project-menu {
        height: 2fr;
        border: round $accent;
    }
    MainScreen #serve-log {
        height: 1fr;
        border: round $panel-lighten-2;
    }
    """

    def __init__(
        self,
        roots: list[WorkspaceRoot],
        config: AtlasConfig,
        registry: SessionRegistry,
        launcher: ServeProcessLauncher,
        state: WorkspaceState,
        state_path: Path | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.roots = roots
        self.config = config
        self.registry = registry
        self.launcher = launcher
        self.state = state
        self.state_path = state_path
        self._project_files: list[ProjectFile] = []
        self._versions: dict[str, str | None] | None = None
        self._items: list[MenuItem] = []

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="main-body"):
            yield OptionList(id="project-menu")
            yield ServeLog(id="serve-log")
        yield StatusBar(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        self.registry.subscribe(self._on_registry_changed)
        self._update_status_bar()
        self.refresh_projects()

    def on_unmount(self) -> None:
        self.registry.unsubscribe(self._on_registry_changed)

    # ── helpers ──────────────────────────────────────────────────────

    @property
    def _log(self) -> ServeLog:
        return self.query_one("#serve-log", ServeLog)

    def _label(self, project_file: ProjectFile) -> str:
        return format_project_display_name(
            project_file, self.config.project_path_display, self.roots,
        )

    def write_output(self, key: str, line: str) -> None:
        session = self.registry.get(key)
        label = self._label(session.project_file) if session else Path(key).name
        self._log.log_output(label, line)

    def _option_for(self, item: MenuItem) -> Option:
        prompt = Text(item.label, style="bold" if item.running else "")
        if item.description:
            prompt.append(f"  {item.description}", style="dim")
        if item.detail:
            prompt.append(f"\n    {item.detail}", style="dim italic")
        return Option(prompt, disabled=item.action == MenuAction.NONE)

    def _render_menu(self) -> None:
        self._items = build_project_menu(
            self._project_files,
            self.registry.running_project_files(),
            self.roots,
            self.config,
            self._versions,
        )
        menu = self.query_one("#project-menu", OptionList)
        highlighted = menu.highlighted
        menu.clear_options()
        menu.add_options([self._option_for(item) for item in self._items])
        if highlighted is not None and self._items:
            menu.highlighted = min(highlighted, len(self._items) - 1)

    def _update_status_bar(self) -> None:
        bar = self.query_one("#status-bar", StatusBar)
        running = self.registry.running_project_files()
        bar.running_count = len(running)
        bar.running_label = self._label(running[0]) if running else ""
        last = self.state.last_project_path
        bar.last_project = Path(last).name if last else ""

    def _on_registry_changed(self) -> None:
        if not self.is_mounted:
            return
        self._render_menu()
        self._update_status_bar()

    # ── discovery ────────────────────────────────────────────────────

    @work(exclusive=True, group="discovery")
    async def refresh_projects(self) -> None:
        try:
            files = find_project_files(self.roots, self.config.additional_project_paths)
        except AtlasError as exc:
            self.app.notify(str(exc), severity="error")
            files = []
        self._project_files = files
        self._versions = await self._detect_versions(files)
        self._render_menu()

    async def _detect_versions(
        self, files: list[ProjectFile],
    ) -> dict[str, str | None]:
        versions: dict[str, str | None] = {}
        by_directory: dict[str, str | None] = {}
        for pf in files:
            if pf.directory not in by_directory:
                try:
                    install = await detect_install(pf.directory, self.config.command)
                except InstallCheckError as exc:
                    logger.warning("Install check failed in %s: %s", pf.directory, exc)
                    self.app.notify(str(exc), severity="error")
                    install = None
                if install is not None:
                    notice = rokit_notice(install, self.registry.notices)
                    if notice:
                        self.app.notify(notice, title="Atlas", timeout=10)
                by_directory[pf.directory] = install.version if install else None
            versions[pf.key] = by_directory[pf.directory]

        if files and not any(versions.values()):
            if self.registry.notices.should_show(MISSING_NOTICE_TOPIC):
                self.app.notify(
                    f"Could not find '{self.config.command}' on PATH. Is it installed?",
                    severity="warning",
                )
        else:
            self.registry.notices.reset(MISSING_NOTICE_TOPIC)
        return versions

    # ── session actions ──────────────────────────────────────────────

    async def _start(self, project_file: ProjectFile) -> None:
        try:
            await self.registry.start(project_file, self.launcher)
        except AtlasError as exc:
            self._log.log_event(str(exc), success=False)
            self.app.notify(
                f"Something went wrong when starting Atlas. Error: {exc}",
                severity="error",
            )
            return
        self.state.remember(project_file.path, self.state_path)
        self._update_status_bar()
        self._log.log_event(f"Serving {self._label(project_file)}")

    async def _stop(self, project_file: ProjectFile) -> None:
        try:
            await self.registry.stop(project_file.path)
        except AtlasError as exc:
            self._log.log_event(str(exc), success=False)
            self.app.notify(
                f"Couldn't stop Atlas process. Error: {exc}", severity="error",
            )
            return
        self._log.log_event(f"Stopped {self._label(project_file)}")

    async def _stop_all(self) -> None:
        for failure in await self.registry.stop_all():
            self._log.log_event(str(failure), success=False)
            self.app.notify(str(failure), severity="error")

    async def _run_action(self, item: MenuItem, action: MenuAction) -> None:
        if action == MenuAction.REFRESH:
            self.refresh_projects()
            return
        project_file = item.project_file
        if project_file is None or action == MenuAction.NONE:
            return
        if action == MenuAction.START:
            await self._start(project_file)
        elif action == MenuAction.STOP:
            await self._stop(project_file)
        elif action == MenuAction.STOP_AND_SERVE:
            await self._stop_all()
            await self._start(project_file)

    def _highlighted_item(self) -> MenuItem | None:
        index = self.query_one("#project-menu", OptionList).highlighted
        if index is None or not 0 <= index < len(self._items):
            return None
        return self._items[index]

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        if not 0 <= event.option_index < len(self._items):
            return
        item = self._items[event.option_index]
        self.run_worker(self._run_action(item, item.action), group="sessions")

    def action_stop_and_serve(self) -> None:
        item = self._highlighted_item()
        if item is None or item.alternate_action != MenuAction.STOP_AND_SERVE:
            return
        self.run_worker(
            self._run_action(item, MenuAction.STOP_AND_SERVE), group="sessions",
        )

    def action_stop_all(self) -> None:
        self.run_worker(self._stop_all(), group="sessions")

    def action_refresh(self) -> None:
        self.refresh_projects()

    def action_resume_last(self) -> None:
        last = self.state.last_project_path
        if not last:
            self.app.notify("No project has been served yet.")
            return
        key = path_key(last)
        project_file = next(
            (pf for pf in self._project_files if pf.key == key), None,
        )
        if project_file is None:
            if not Path(last).is_file():
                self.app.notify(f"Last project no longer exists: {last}", severity="warning")
                return
            candidate = ProjectFile(
                name=Path(last).name,
                workspace_folder_name=Path(last).parent.name,
                path=last,
            )
            root = containing_root(candidate, self.roots)
            project_file = ProjectFile(
                name=candidate.name,
                workspace_folder_name=root.name if root else candidate.workspace_folder_name,
                path=candidate.path,
            )
        self.run_worker(self._start(project_file), group="sessions")
