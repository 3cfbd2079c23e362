"""atlasctl — main application entry point."""

from __future__ import annotations

import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_DIR = Path.home() / ".atlas" / "logs"


def configure_logging(log_level: str, log_file: Path | None = None, stderr: bool = False) -> Path:
    """Route root logging to a rotating file, and to stderr outside the TUI."""
    log_file = log_file or LOG_DIR / "atlasctl.log"
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"
    )
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    if stderr:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)
    return log_file


def _project_file_for(path: str, roots):
    from atlasctl.engine.display import containing_root
    from atlasctl.engine.models import ProjectFile

    resolved = Path(path).expanduser().resolve()
    candidate = ProjectFile(
        name=resolved.name,
        workspace_folder_name=resolved.parent.name,
        path=str(resolved),
    )
    root = containing_root(candidate, roots)
    if root is None:
        return candidate
    return ProjectFile(
        name=candidate.name,
        workspace_folder_name=root.name,
        path=candidate.path,
    )


def _list_projects(roots, config) -> int:
    from atlasctl.engine.display import format_project_display_names, workspace_folder_label
    from atlasctl.engine.errors import NoWorkspaceError
    from atlasctl.shared.services.discovery import find_project_files

    try:
        project_files = find_project_files(roots, config.additional_project_paths)
    except NoWorkspaceError as exc:
        print(f"Error: {exc}")
        return 1
    if not project_files:
        print("No project files found.")
        return 0

    display = format_project_display_names(
        project_files,
        config.project_path_display,
        config.max_display_length,
        roots,
    )
    width = max(len(info.display_name) for info in display.values())
    for pf in project_files:
        info = display[pf.key]
        print(f"{info.display_name:<{width}}  {workspace_folder_label(pf, roots)}")
    return 0


async def _serve_foreground(project_file, config) -> int:
    """Serve one project until it exits or the user interrupts."""
    from atlasctl.engine.errors import AtlasError
    from atlasctl.engine.session_registry import SessionRegistry
    from atlasctl.shared.services.serve_process import ServeProcessLauncher

    registry = SessionRegistry()
    finished = asyncio.Event()

    def on_change() -> None:
        if not registry.is_running(project_file.path):
            finished.set()

    registry.subscribe(on_change)
    launcher = ServeProcessLauncher(
        command=config.command,
        output_callback=lambda _key, line: print(line, flush=True),
        stop_timeout=config.stop_timeout_seconds,
    )
    try:
        session = await registry.start(project_file, launcher)
    except AtlasError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        await finished.wait()
    finally:
        for failure in await registry.stop_all():
            print(f"Error: {failure}", file=sys.stderr)
    code = session.handle.returncode
    return code if code is not None else 0


def main() -> None:
    import argparse

    import yaml

    from atlasctl import __version__
    from atlasctl.engine.config import parse_display_policy
    from atlasctl.engine.errors import ConfigError
    from atlasctl.engine.models import DisplayPolicy
    from atlasctl.engine.yaml_config import load_config
    from atlasctl.shared.services.discovery import roots_from_paths

    parser = argparse.ArgumentParser(
        prog="atlasctl",
        description="atlasctl — manage Atlas project serve sessions",
    )
    parser.add_argument(
        "--root", action="append", metavar="DIR",
        help="Workspace root folder (repeatable; defaults to the current directory)",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help="Path to a YAML config file (default: .atlas/atlas.yaml or atlas.yaml)",
    )
    parser.add_argument(
        "--display", choices=[p.value for p in DisplayPolicy],
        help="Override project_path_display for this run",
    )
    parser.add_argument(
        "--list", action="store_true",
        help="Print discovered project files with their display names and exit",
    )
    parser.add_argument(
        "--serve", metavar="PROJECT_FILE",
        help="Serve one project file in the foreground (Ctrl-C stops it)",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    args = parser.parse_args()

    interactive = not (args.list or args.serve)
    try:
        config = load_config(args.config)
    except (OSError, ConfigError) as exc:
        print(f"Error: could not load config: {exc}", file=sys.stderr)
        sys.exit(2)
    except yaml.YAMLError as exc:
        print(f"Error: invalid config file: {exc}", file=sys.stderr)
        sys.exit(2)
    if args.display:
        config.project_path_display = parse_display_policy(args.display, "--display")

    log_file = configure_logging(config.log_level, stderr=not interactive)
    logger = logging.getLogger(__name__)
    logger.info(
        "Starting atlasctl %s cwd=%s config=%s log=%s",
        __version__, Path.cwd(), args.config or "<auto>", log_file,
    )

    roots = roots_from_paths(args.root or [Path.cwd()])

    if args.list:
        sys.exit(_list_projects(roots, config))

    if args.serve:
        project_file = _project_file_for(args.serve, roots)
        try:
            code = asyncio.run(_serve_foreground(project_file, config))
        except KeyboardInterrupt:
            logger.info("Interrupted; serve session stopped")
            code = 130
        sys.exit(code)

    from atlasctl.tui.app import AtlasApp

    app = AtlasApp(roots=roots, config=config)
    app.run()


if __name__ == "__main__":
    main()
