"""Exception hierarchy for project resolution and session management.

Specific exceptions for each failure mode. Stopping a project that is
not running is not an error; it is a no-op.
"""
from __future__ import annotations


class AtlasError(Exception):
    """Base exception for all atlasctl errors."""


class SessionError(AtlasError):
    """Base exception for session registry failures."""
    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(message)


class AlreadyRunningError(SessionError):
    """A session is already active (or starting) for this project."""
    def __init__(self, path: str):
        super().__init__(path, f"Project is already running: {path}")


class LaunchFailedError(SessionError):
    """The process collaborator could not start a session."""
    def __init__(self, path: str, reason: str):
        self.reason = reason
        super().__init__(path, f"Failed to start {path}: {reason}")


class StopFailedError(SessionError):
    """The process collaborator rejected a stop request.

    The session is still removed from the registry.
    """
    def __init__(self, path: str, reason: str):
        self.reason = reason
        super().__init__(path, f"Failed to stop {path}: {reason}")


class NoWorkspaceError(AtlasError):
    """Discovery was requested without any workspace roots."""
    def __init__(self) -> None:
        super().__init__(
            "You must open a workspace folder to do this "
            "(pass --root or run from a project directory)."
        )


class InstallCheckError(AtlasError):
    """The external tool was found but `--version` failed."""
    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(
            f"Trying to use {command} resulted in an error: ({reason}). "
            f"Fix or delete this executable manually and try again."
        )


class ConfigError(AtlasError):
    """Configuration file has an invalid shape or value type."""
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid config {path}: {reason}")
