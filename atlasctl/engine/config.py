"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via ATLAS_* env vars or an
``atlas:`` section in a YAML file (see yaml_config.py). Values are read
once and passed around as a snapshot; nothing watches them.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .display import DEFAULT_MAX_LENGTH, MIN_MAX_LENGTH
from .models import DisplayPolicy

logger = logging.getLogger(__name__)


def parse_display_policy(value: object, setting: str) -> DisplayPolicy:
    """Map a raw setting value to a DisplayPolicy.

    Unknown values fall back to AS_NEEDED with a warning.
    """
    if isinstance(value, DisplayPolicy):
        return value
    for policy in DisplayPolicy:
        if value == policy.value:
            return policy
    logger.warning(
        "Invalid %s setting: %r. Defaulting to '%s'.",
        setting, value, DisplayPolicy.AS_NEEDED.value,
    )
    return DisplayPolicy.AS_NEEDED


def parse_max_length(value: object) -> int:
    try:
        length = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        logger.warning(
            "Invalid max_display_length %r; using %d", value, DEFAULT_MAX_LENGTH,
        )
        return DEFAULT_MAX_LENGTH
    if length < MIN_MAX_LENGTH:
        logger.warning(
            "max_display_length %d below minimum; using %d",
            length, MIN_MAX_LENGTH,
        )
        return MIN_MAX_LENGTH
    return length


@dataclass
class AtlasConfig:
    """Project menu and serve-process configuration."""

    # How much of each project's path to show in the project list.
    project_path_display: DisplayPolicy = DisplayPolicy.AS_NEEDED
    # When to add a "Full path: ..." detail line under a project.
    show_full_path: DisplayPolicy = DisplayPolicy.AS_NEEDED
    # Extra directories searched for project files, absolute or
    # relative to each workspace root.
    additional_project_paths: list[str] = field(default_factory=list)
    max_display_length: int = DEFAULT_MAX_LENGTH

    # External tool
    command: str = "atlas"
    stop_timeout_seconds: float = 5.0

    # Logging
    log_level: str = "INFO"

    # Where "last served project" is remembered. None uses ~/.atlas/state.json.
    state_path: str | None = None

    @classmethod
    def from_env(cls, base: AtlasConfig | None = None) -> AtlasConfig:
        """Apply ATLAS_* environment overrides on top of *base* (or defaults)."""
        config = base or cls()
        atlas_vars = {
            k: v for k, v in os.environ.items() if k.startswith("ATLAS_")
        }
        if atlas_vars:
            logger.info(
                "AtlasConfig.from_env: ATLAS_* env overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(atlas_vars.items())),
            )
        else:
            logger.debug("AtlasConfig.from_env: no ATLAS_* env vars set")

        if "ATLAS_PROJECT_PATH_DISPLAY" in os.environ:
            config.project_path_display = parse_display_policy(
                os.environ["ATLAS_PROJECT_PATH_DISPLAY"], "projectPathDisplay",
            )
        if "ATLAS_SHOW_FULL_PATH" in os.environ:
            config.show_full_path = parse_display_policy(
                os.environ["ATLAS_SHOW_FULL_PATH"], "showFullPath",
            )
        extra = os.getenv("ATLAS_ADDITIONAL_PROJECT_PATHS")
        if extra:
            config.additional_project_paths = [
                p for p in extra.split(os.pathsep) if p.strip()
            ]
        if "ATLAS_MAX_DISPLAY_LENGTH" in os.environ:
            config.max_display_length = parse_max_length(
                os.environ["ATLAS_MAX_DISPLAY_LENGTH"]
            )
        config.command = os.getenv("ATLAS_COMMAND", config.command)
        if "ATLAS_STOP_TIMEOUT" in os.environ:
            try:
                config.stop_timeout_seconds = float(os.environ["ATLAS_STOP_TIMEOUT"])
            except ValueError:
                logger.warning(
                    "Invalid ATLAS_STOP_TIMEOUT %r; keeping %.1fs",
                    os.environ["ATLAS_STOP_TIMEOUT"], config.stop_timeout_seconds,
                )
        config.log_level = os.getenv("ATLAS_LOG_LEVEL", config.log_level).upper()
        config.state_path = os.getenv("ATLAS_STATE_PATH") or config.state_path

        logger.info(
            "AtlasConfig: display=%s full_path=%s extra_paths=%d command=%s",
            config.project_path_display.value,
            config.show_full_path.value,
            len(config.additional_project_paths),
            config.command,
        )
        return config
