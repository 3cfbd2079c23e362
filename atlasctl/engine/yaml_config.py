"""YAML configuration loader.

Loads the ``atlas:`` section of a single YAML file into an AtlasConfig.
ATLAS_* environment variables still win over file values.

Example YAML:
    atlas:
      project_path_display: asNeeded   # never | asNeeded | always
      show_full_path: asNeeded
      additional_project_paths:
        - packages
        - /opt/shared-places
      max_display_length: 70
      command: atlas
      stop_timeout_seconds: 5
      log_level: INFO
"""
from __future__ import annotations

import logging
from pathlib import Path

import yaml

from .config import AtlasConfig, parse_display_policy, parse_max_length
from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_CANDIDATES = (
    Path(".atlas") / "atlas.yaml",
    Path("atlas.yaml"),
)


def discover_config_path(cwd: Path | None = None) -> Path | None:
    """Return ``.atlas/atlas.yaml`` (preferred) or ``atlas.yaml`` if present."""
    base = cwd or Path.cwd()
    for candidate in CONFIG_CANDIDATES:
        path = base / candidate
        if path.exists():
            logger.info("Auto-discovered config: %s", path)
            return path
    logger.debug(
        "No config file found under %s (tried %s)",
        base, ", ".join(str(c) for c in CONFIG_CANDIDATES),
    )
    return None


def _section(raw: object, path: Path) -> dict:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(str(path), "top level must be a mapping")
    section = raw.get("atlas", {})
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(str(path), "'atlas' section must be a mapping")
    return section


def parse_config_section(section: dict, path: str = "<config>") -> AtlasConfig:
    """Build an AtlasConfig from an already-parsed ``atlas:`` mapping."""
    config = AtlasConfig()
    known = set(AtlasConfig.__dataclass_fields__)
    unknown = sorted(set(section) - known)
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", path, ", ".join(unknown))

    if "project_path_display" in section:
        config.project_path_display = parse_display_policy(
            section["project_path_display"], "project_path_display",
        )
    if "show_full_path" in section:
        config.show_full_path = parse_display_policy(
            section["show_full_path"], "show_full_path",
        )
    if "additional_project_paths" in section:
        paths = section["additional_project_paths"] or []
        if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
            raise ConfigError(path, "additional_project_paths must be a list of strings")
        config.additional_project_paths = list(paths)
    if "max_display_length" in section:
        config.max_display_length = parse_max_length(section["max_display_length"])
    if "command" in section:
        command = section["command"]
        if not isinstance(command, str) or not command.strip():
            raise ConfigError(path, "command must be a non-empty string")
        config.command = command.strip()
    if "stop_timeout_seconds" in section:
        try:
            config.stop_timeout_seconds = float(section["stop_timeout_seconds"])
        except (TypeError, ValueError) as exc:
            raise ConfigError(path, f"stop_timeout_seconds: {exc}") from exc
    if "log_level" in section:
        config.log_level = str(section["log_level"]).upper()
    if "state_path" in section and section["state_path"]:
        config.state_path = str(section["state_path"])
    return config


def load_yaml_config(path: str | Path, apply_env: bool = True) -> AtlasConfig:
    """Load and parse a YAML config file.

    Raises FileNotFoundError, yaml.YAMLError, or ConfigError; each is
    logged before propagating.
    """
    path = Path(path)
    logger.info(
        "load_yaml_config: loading %s (exists=%s)", path, path.exists(),
    )
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        logger.error(
            "load_yaml_config: config file not found at %s (absolute path: %s)",
            path, path.absolute(),
        )
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    config = parse_config_section(_section(raw, path), str(path))
    if apply_env:
        config = AtlasConfig.from_env(config)
    return config


def load_config(
    config_path: str | Path | None = None,
    cwd: Path | None = None,
) -> AtlasConfig:
    """Explicit path, else auto-discovered file, else env-only defaults."""
    path = Path(config_path) if config_path else discover_config_path(cwd)
    if path is None:
        return AtlasConfig.from_env()
    return load_yaml_config(path)
