"""
In-memory registry of profiling sessions.

The store is the only place session state is read or changed. It is an
explicit object constructed once per server process and injected into the
Profiler and the tool handlers.

Mutations are synchronous and run on the event loop thread, so they
serialize naturally and need no locks. Races on one id resolve to clean
errors: remove_session is idempotent and update_session fails closed.
"""

import dataclasses
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models.session import Session, SessionStatus
from ..validation import SessionNotFoundError, SessionStateError

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset(
    f.name for f in dataclasses.fields(Session) if f.name != "session_id"
)


class SessionStore:
    """
    Registry of sessions keyed by session_id.

    Args:
        traces_root: Directory holding one sub-directory per session
        trace_filename: Name of the trace bundle inside a session directory
    """

    def __init__(self, traces_root: Path, trace_filename: str = "recording.trace"):
        self.traces_root = Path(traces_root)
        self.trace_filename = trace_filename
        self._sessions: Dict[str, Session] = {}

    def create_session_id(self) -> str:
        """Generate a unique, collision-resistant session id."""
        return f"session-{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"

    def get_trace_path(self, session_id: str) -> Path:
        """Deterministic trace bundle location for a session id."""
        return self.traces_root / session_id / self.trace_filename

    def register_session(self, session: Session) -> None:
        """Insert a session, replacing any record with the same id."""
        if session.session_id in self._sessions:
            logger.debug(f"Replacing session record {session.session_id}")
        self._sessions[session.session_id] = session
        logger.debug(f"Registered session {session.session_id} (status: {session.status.value})")

    def update_session(self, session_id: str, **changes: Any) -> Session:
        """
        Merge changes into an existing session and return the merged record.

        Raises:
            SessionNotFoundError: If no session has this id (nothing is created)
            SessionStateError: If the status change would move backwards
            ValueError: If an unknown field is given
        """
        current = self._sessions.get(session_id)
        if current is None:
            raise SessionNotFoundError(session_id)

        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown session fields: {', '.join(sorted(unknown))}")

        if "status" in changes:
            target = SessionStatus(changes["status"])
            if not current.status.can_transition_to(target):
                raise SessionStateError(
                    f"Session {session_id} cannot move from "
                    f"'{current.status.value}' to '{target.value}'",
                    details={"session_id": session_id, "status": current.status.value},
                )
            changes["status"] = target

        merged = dataclasses.replace(current, **changes)
        self._sessions[session_id] = merged
        return merged

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def has_session(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get_all_sessions(self) -> List[Session]:
        return list(self._sessions.values())

    def remove_session(self, session_id: str) -> None:
        """Remove a session; removing an unknown id is a no-op."""
        if self._sessions.pop(session_id, None) is not None:
            logger.debug(f"Removed session {session_id}")

    def get_session_count(self) -> int:
        return len(self._sessions)

    def clear_all_sessions(self) -> None:
        self._sessions.clear()
