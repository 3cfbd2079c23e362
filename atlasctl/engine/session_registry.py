"""Session registry — at most one running serve session per project path.

All mutations are expected to run on a single event loop. The table is
the single source of truth: whichever of an explicit stop or an
external exit notification reaches it first removes the entry, and the
other becomes a no-op.
"""
from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .errors import AlreadyRunningError, LaunchFailedError, StopFailedError
from .lifecycle import validate_transition
from .models import ProjectFile, SessionState, path_key

logger = logging.getLogger(__name__)

# Called by the launcher once per session when the process exits on its
# own. Signature: on_exit(exit_code_or_none) -> None
ExitCallback = Callable[[int | None], None]

# Registry observers take no arguments; they re-read the read-only views.
ChangeCallback = Callable[[], None]

# Duck-typed launcher contract:
#   async def launch(project_file, on_exit) -> handle
#   handle.stop() -> Awaitable[None] | None
Launcher = Any


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class OneTimeNotices:
    """Topics the user has already been told about in this process.

    A topic is shown at most once until it is reset, e.g. after the
    condition behind the notice has changed.
    """

    def __init__(self) -> None:
        self._shown: set[str] = set()

    def should_show(self, topic: str) -> bool:
        """Return True the first time a topic is asked about."""
        if topic in self._shown:
            return False
        self._shown.add(topic)
        return True

    def reset(self, topic: str) -> None:
        self._shown.discard(topic)

    def clear(self) -> None:
        self._shown.clear()


@dataclass
class Session:
    """One active run of the serve process for a project."""

    project_file: ProjectFile
    handle: Any
    started_at: datetime = field(default_factory=_utc_now)

    @property
    def key(self) -> str:
        return self.project_file.key

    @property
    def pid(self) -> int | None:
        return getattr(self.handle, "pid", None)

    async def stop(self) -> None:
        result = self.handle.stop()
        if inspect.isawaitable(result):
            await result


class SessionRegistry:
    """Keyed table of active sessions with start/stop and exit reconciliation."""

    def __init__(
        self,
        on_change: ChangeCallback | None = None,
        notices: OneTimeNotices | None = None,
    ) -> None:
        self._sessions: dict[str, Session] = {}
        self._starting: set[str] = set()
        self._listeners: list[ChangeCallback] = []
        if on_change is not None:
            self._listeners.append(on_change)
        self.notices = notices or OneTimeNotices()

    # ── observers ────────────────────────────────────────────────────

    def subscribe(self, callback: ChangeCallback) -> None:
        """Register a callback fired after every table mutation."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback: ChangeCallback) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Session registry listener failed")

    # ── read-only views ──────────────────────────────────────────────

    @property
    def sessions(self) -> dict[str, Session]:
        return dict(self._sessions)

    def get(self, path: str) -> Session | None:
        return self._sessions.get(path_key(path))

    def state(self, path: str) -> SessionState:
        key = path_key(path)
        if key in self._sessions:
            return SessionState.RUNNING
        if key in self._starting:
            return SessionState.STARTING
        return SessionState.IDLE

    def is_running(self, path: str) -> bool:
        return self.state(path) == SessionState.RUNNING

    def running_states(self) -> dict[str, SessionState]:
        states = {key: SessionState.STARTING for key in self._starting}
        states.update({key: SessionState.RUNNING for key in self._sessions})
        return states

    def running_project_files(self) -> list[ProjectFile]:
        return [session.project_file for session in self._sessions.values()]

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and path_key(path) in self._sessions

    # ── mutations ────────────────────────────────────────────────────

    async def start(
        self,
        project_file: ProjectFile,
        launcher: Launcher,
    ) -> Session:
        """Launch a session for a project and record it.

        Raises:
            AlreadyRunningError: a session exists or is being started.
            LaunchFailedError: the launcher failed; the table is unchanged.
        """
        key = project_file.key
        current = self.state(key)
        if current != SessionState.IDLE:
            raise AlreadyRunningError(project_file.path)
        validate_transition(current, SessionState.STARTING)

        # The exit callback is bound before the handle exists; an exit
        # reported before launch() returns is a failed launch.
        bound: dict[str, Any] = {}

        def on_exit(code: int | None = None) -> None:
            session = bound.get("session")
            if session is None:
                bound["early_exit"] = code
                return
            self._handle_exit(session, code)

        self._starting.add(key)
        try:
            handle = await launcher.launch(project_file, on_exit)
        except LaunchFailedError as exc:
            logger.warning("Launch failed for %s: %s", project_file.path, exc.reason)
            raise
        except Exception as exc:
            logger.warning(
                "Launch failed for %s: %s: %s",
                project_file.path, type(exc).__name__, exc,
            )
            raise LaunchFailedError(project_file.path, _describe(exc)) from exc
        finally:
            self._starting.discard(key)

        if "early_exit" in bound:
            code = bound["early_exit"]
            logger.warning(
                "Process for %s exited during launch (code=%s)",
                project_file.path, code,
            )
            raise LaunchFailedError(
                project_file.path,
                f"process exited immediately with code {code}",
            )

        validate_transition(SessionState.STARTING, SessionState.RUNNING)
        session = Session(project_file=project_file, handle=handle)
        bound["session"] = session
        self._sessions[key] = session
        logger.info(
            "Started session for %s (pid=%s)", project_file.path, session.pid,
        )
        self._notify()
        return session

    async def stop(self, path: str) -> bool:
        """Stop the session for a path.

        Returns False when nothing was running. The entry is removed
        even if the launcher's stop fails, in which case
        StopFailedError is raised after observers are notified.
        """
        session = self._sessions.pop(path_key(path), None)
        if session is None:
            logger.debug("Stop requested for idle project %s", path)
            return False
        validate_transition(SessionState.RUNNING, SessionState.IDLE)
        logger.info("Stopping session for %s", session.project_file.path)
        try:
            await session.stop()
        except Exception as exc:
            logger.warning(
                "Stop failed for %s: %s: %s",
                session.project_file.path, type(exc).__name__, exc,
            )
            raise StopFailedError(session.project_file.path, _describe(exc)) from exc
        finally:
            self._notify()
        return True

    async def stop_all(self) -> list[StopFailedError]:
        """Best-effort stop of every tracked session.

        Individual failures are logged and returned; they never abort
        the sweep.
        """
        failures: list[StopFailedError] = []
        for key in list(self._sessions):
            try:
                await self.stop(key)
            except StopFailedError as exc:
                failures.append(exc)
        if failures:
            logger.warning(
                "stop_all: %d session(s) failed to stop cleanly", len(failures),
            )
        return failures

    def _handle_exit(self, session: Session, code: int | None) -> None:
        if self._sessions.get(session.key) is not session:
            logger.debug(
                "Ignoring exit for %s: session no longer tracked",
                session.project_file.path,
            )
            return
        del self._sessions[session.key]
        validate_transition(SessionState.RUNNING, SessionState.IDLE)
        logger.info(
            "Session for %s exited (code=%s)", session.project_file.path, code,
        )
        self._notify()

