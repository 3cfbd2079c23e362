"""Detect the installed `atlas` executable and how it is managed.

Detection only: nothing here installs, updates, or deletes executables.
"""
from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from atlasctl.engine.errors import InstallCheckError
from atlasctl.engine.session_registry import OneTimeNotices

logger = logging.getLogger(__name__)

ROKIT_NOTICE_TOPIC = "rokit-suggestion"


class InstallType(str, Enum):
    ROKIT = "Rokit"
    GLOBAL = "global"


@dataclass(frozen=True)
class AtlasInstall:
    version: str
    install_type: InstallType
    resolved_path: str


def install_type_for(resolved_path: str) -> InstallType:
    if ".rokit" in resolved_path:
        return InstallType.ROKIT
    return InstallType.GLOBAL


def install_detail(install_type: InstallType | None, mixed: bool) -> str:
    """One-line description of how the tool is installed."""
    if install_type is None:
        return "Atlas is not installed."
    if mixed:
        return "Atlas install method differs by project file."
    if install_type == InstallType.GLOBAL:
        return "Atlas is globally installed."
    return f"Atlas is managed by {install_type.value}."


def rokit_notice(install: AtlasInstall, notices: OneTimeNotices) -> str | None:
    """Suggest Rokit for non-Rokit installs, once per process.

    Reset ROKIT_NOTICE_TOPIC on *notices* after the install changes so the
    suggestion can be shown again.
    """
    if install.install_type == InstallType.ROKIT:
        return None
    if not notices.should_show(ROKIT_NOTICE_TOPIC):
        return None
    return (
        f"{install_detail(install.install_type, False)} You should consider "
        "using Rokit instead to manage your toolchains. Rokit installs "
        "project-specific command line tools and switches between them "
        "seamlessly."
    )


async def detect_install(
    project_dir: str | Path,
    command: str = "atlas",
) -> AtlasInstall | None:
    """Resolve `command` on PATH and read its version from the project dir.

    Returns None when the tool is absent, or when a Rokit shim reports it
    is not configured for this project.

    Raises:
        InstallCheckError: the executable exists but `--version` failed.
    """
    resolved_path = shutil.which(command)
    if resolved_path is None:
        logger.debug("%s not found on PATH", command)
        return None

    try:
        proc = await asyncio.create_subprocess_exec(
            resolved_path, "--version",
            cwd=str(project_dir),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout_b, stderr_b = await proc.communicate()
    except OSError as exc:
        raise InstallCheckError(resolved_path, str(exc)) from exc

    stdout = stdout_b.decode("utf-8", errors="replace")
    stderr = stderr_b.decode("utf-8", errors="replace")

    if proc.returncode != 0:
        if "rokit" in stderr:
            logger.debug("Rokit shim reports %s not configured in %s", command, project_dir)
            return None
        raise InstallCheckError(resolved_path, (stderr or stdout).strip())

    parts = stdout.split()
    if len(parts) < 2:
        logger.debug("Unrecognised %s --version output: %r", command, stdout)
        return None

    return AtlasInstall(
        version=parts[1],
        install_type=install_type_for(resolved_path),
        resolved_path=resolved_path,
    )
