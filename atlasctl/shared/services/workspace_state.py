"""Workspace state — small persistent record stored in ~/.atlas/state.json.

Remembers the last project that was served so it can be resumed.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

STATE_PATH = Path.home() / ".atlas" / "state.json"


@dataclass
class WorkspaceState:
    """Persisted per-user state.

    Attributes:
        last_project_path: Project file most recently started, if any.
    """

    last_project_path: str | None = None

    def validate(self) -> None:
        """Drop values of the wrong type."""
        if not isinstance(self.last_project_path, str) or not self.last_project_path:
            self.last_project_path = None

    def save(self, path: Path | None = None) -> None:
        """Persist state to disk."""
        target = path or STATE_PATH
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(json.dumps(asdict(self), indent=2))
        except OSError:
            logger.warning("Failed to save workspace state to %s", target, exc_info=True)

    def remember(self, project_path: str, path: Path | None = None) -> None:
        self.last_project_path = project_path
        self.save(path)

    @classmethod
    def load(cls, path: Path | None = None) -> WorkspaceState:
        """Load state from disk, returning defaults if missing/corrupt."""
        target = path or STATE_PATH
        try:
            if target.exists():
                data = json.loads(target.read_text())
                if not isinstance(data, dict):
                    raise ValueError("state file is not a JSON object")
                state = cls(**{
                    k: v for k, v in data.items()
                    if k in cls.__dataclass_fields__
                })
                state.validate()
                logger.debug("Loaded workspace state from %s", target)
                return state
            logger.debug("Workspace state not found at %s; using defaults", target)
        except (OSError, ValueError):
            logger.warning("Failed to load workspace state from %s; using defaults", target)
        return cls()
