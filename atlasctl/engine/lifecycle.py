"""Session lifecycle state machine.

Defines valid transitions and enforces them. Invalid transitions
raise ValueError rather than silently proceeding.

State Diagram:

    IDLE ──> STARTING ──┬──> RUNNING ──> IDLE
                        │
                        └──> IDLE  (launch failed)

Starting a project that is STARTING or RUNNING is reported by the
registry as AlreadyRunningError before any transition is attempted.
"""
from __future__ import annotations

from .models import SessionState

VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
    SessionState.IDLE: {
        SessionState.STARTING,
    },
    SessionState.STARTING: {
        SessionState.RUNNING,
        SessionState.IDLE,
    },
    SessionState.RUNNING: {
        SessionState.IDLE,
    },
}


def validate_transition(current: SessionState, target: SessionState) -> None:
    """Validate a state transition. Raises ValueError if invalid."""
    allowed = VALID_TRANSITIONS.get(current, set())
    if target not in allowed:
        allowed_str = ", ".join(sorted(s.value for s in allowed)) or "none"
        raise ValueError(
            f"Invalid session transition: {current.value} -> {target.value}. "
            f"Allowed from {current.value}: {allowed_str}"
        )
