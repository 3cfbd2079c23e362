"""atlasctl engine — project display names and serve-session tracking."""
from .models import (
    DisplayPolicy,
    ProjectDisplayInfo,
    ProjectFile,
    SessionState,
    WorkspaceRoot,
    normalize_path,
    path_key,
)
from .config import AtlasConfig
from .display import (
    format_project_display_name,
    format_project_display_names,
    is_external_project,
    truncate_display_name,
    workspace_folder_label,
)
from .errors import (
    AlreadyRunningError,
    AtlasError,
    ConfigError,
    InstallCheckError,
    LaunchFailedError,
    NoWorkspaceError,
    SessionError,
    StopFailedError,
)
from .session_registry import OneTimeNotices, Session, SessionRegistry

__all__ = [
    # Models
    "DisplayPolicy",
    "ProjectDisplayInfo",
    "ProjectFile",
    "SessionState",
    "WorkspaceRoot",
    "normalize_path",
    "path_key",
    # Config
    "AtlasConfig",
    # Display names
    "format_project_display_name",
    "format_project_display_names",
    "is_external_project",
    "truncate_display_name",
    "workspace_folder_label",
    # Sessions
    "OneTimeNotices",
    "Session",
    "SessionRegistry",
    # Errors
    "AlreadyRunningError",
    "AtlasError",
    "ConfigError",
    "InstallCheckError",
    "LaunchFailedError",
    "NoWorkspaceError",
    "SessionError",
    "StopFailedError",
]
