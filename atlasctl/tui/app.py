"""atlasctl TUI — Textual application class."""

from __future__ import annotations

import logging
from pathlib import Path

from textual.app import App

from atlasctl.engine.config import AtlasConfig
from atlasctl.engine.models import WorkspaceRoot
from atlasctl.engine.session_registry import SessionRegistry
from atlasctl.shared.services.serve_process import ServeProcessLauncher
from atlasctl.shared.services.workspace_state import WorkspaceState
from atlasctl.tui.screens.main import MainScreen

logger = logging.getLogger(__name__)


class AtlasApp(App):
    """Pick project files and manage their serve sessions."""

    TITLE = "Atlas"
    SUB_TITLE = "Project sessions"

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
        ("escape", "cancel_or_blur", "Cancel"),
    ]

    def __init__(
        self,
        roots: list[WorkspaceRoot],
        config: AtlasConfig,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.roots = roots
        self.config = config
        self.state_path = Path(config.state_path) if config.state_path else None
        self.state = WorkspaceState.load(self.state_path)
        self.registry = SessionRegistry()
        self.launcher = ServeProcessLauncher(
            command=config.command,
            output_callback=self._on_serve_output,
            stop_timeout=config.stop_timeout_seconds,
        )
        self._main: MainScreen | None = None

    def on_mount(self) -> None:
        self._main = MainScreen(
            roots=self.roots,
            config=self.config,
            registry=self.registry,
            launcher=self.launcher,
            state=self.state,
            state_path=self.state_path,
        )
        self.push_screen(self._main)

    def _on_serve_output(self, key: str, line: str) -> None:
        if self._main is not None and self._main.is_mounted:
            self._main.write_output(key, line)

    async def action_quit(self) -> None:
        """Stop every running session before quitting."""
        failures = await self.registry.stop_all()
        for failure in failures:
            logger.error("Shutdown: %s", failure)
        await super().action_quit()

    def action_cancel_or_blur(self) -> None:
        self.screen.set_focus(None)
