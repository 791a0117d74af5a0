"""Session management models."""

from typing import NewType

SessionId = NewType("SessionId", str)

SESSION_KEY_PREFIX = "session:"


def session_key(session_id: SessionId) -> str:
    """Redis key holding the user id for a session."""
    return f"{SESSION_KEY_PREFIX}{session_id}"
