"""Serve log — RichLog panel for serve-process output and session events."""

from __future__ import annotations

from rich.markup import escape
from textual.widgets import RichLog


class ServeLog(RichLog):
    """Scrolling log of process output from every running session."""

    def __init__(self, **kwargs) -> None:
        super().__init__(
            auto_scroll=True,
            wrap=True,
            markup=True,
            highlight=False,
            max_lines=5000,
            **kwargs,
        )

    def log_output(self, project: str, line: str) -> None:
        self.write(f"[dim]{escape(project)}[/dim] {escape(line)}")

    def log_event(self, message: str, success: bool = True) -> None:
        color = "green" if success else "red"
        self.write(f"[{color}]{escape(message)}[/{color}]")
