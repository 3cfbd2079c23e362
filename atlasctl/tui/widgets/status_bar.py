"""Status bar — bottom bar showing running sessions and the last project."""

from __future__ import annotations

import time

from rich.text import Text
from textual.reactive import reactive
from textual.timer import Timer
from textual.widget import Widget


def _format_elapsed(seconds: float) -> str:
    """Format elapsed seconds into a human-readable string."""
    secs = int(seconds)
    if secs < 60:
        return f"{secs}s"
    elif secs < 3600:
        m, s = divmod(secs, 60)
        return f"{m}m {s}s"
    else:
        h, remainder = divmod(secs, 3600)
        m = remainder // 60
        return f"{h}h {m}m"


class StatusBar(Widget):
    """Single-line status bar with session count and resume target."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        dock: bottom;
        background: $panel;
    }
    """

    running_count: reactive[int] = reactive(0)
    running_label: reactive[str] = reactive("")
    last_project: reactive[str] = reactive("")

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._serving_since: float | None = None
        self._elapsed_timer: Timer | None = None

    def watch_running_count(self, old_value: int, new_value: int) -> None:
        """Track serving time while at least one session is running."""
        if new_value > 0 and old_value == 0:
            self._serving_since = time.monotonic()
            if self._elapsed_timer is None:
                self._elapsed_timer = self.set_interval(1.0, self.refresh)
        elif new_value == 0 and old_value > 0:
            self._serving_since = None
            if self._elapsed_timer is not None:
                self._elapsed_timer.stop()
                self._elapsed_timer = None

    def render(self) -> Text:
        bar = Text()
        bar.append(" Atlas ", style="bold")
        bar.append(" │ ", style="dim")

        if self.running_count == 0:
            bar.append("○ idle", style="dim")
        elif self.running_count == 1:
            bar.append(f"● serving {self.running_label}", style="green")
        else:
            bar.append(f"● {self.running_count} projects serving", style="green")
        if self._serving_since is not None:
            elapsed = _format_elapsed(time.monotonic() - self._serving_since)
            bar.append(f" ({elapsed})", style="dim")

        if self.last_project:
            bar.append(" │ ", style="dim")
            bar.append(f"[r] resume {self.last_project}", style="dim italic")
        return bar
