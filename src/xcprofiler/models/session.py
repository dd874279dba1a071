"""
Session data models.

A session binds one recording process, one trace bundle and one lifecycle
state. Sessions live only in memory for the lifetime of the server process.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional

import psutil


class SessionStatus(str, Enum):
    """Lifecycle states of a profiling session."""
    RECORDING = "recording"
    STOPPED = "stopped"
    COMPLETED = "completed"
    FAILED = "failed"

    def can_transition_to(self, target: "SessionStatus") -> bool:
        """Return True if moving from this status to `target` is a forward move."""
        return target == self or target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.RECORDING: frozenset({SessionStatus.STOPPED, SessionStatus.FAILED}),
    # A failed session can be retried by stop or analyzed once the bundle shows up.
    SessionStatus.FAILED: frozenset({SessionStatus.STOPPED, SessionStatus.COMPLETED}),
    SessionStatus.STOPPED: frozenset({SessionStatus.COMPLETED}),
    SessionStatus.COMPLETED: frozenset(),
}


@dataclass
class Session:
    """
    A single profiling session tracked by the SessionStore.
    """

    session_id: str
    device_udid: str
    bundle_id: str
    # Ordered, duplicate-free template short names.
    templates: List[str]
    trace_path: Path
    pid: int
    status: SessionStatus
    # Wall-clock epoch seconds.
    start_time: float
    end_time: Optional[float] = None
    file_size_mb: Optional[float] = None
    # Lookup object used only to signal the recorder; the OS owns the process.
    process_handle: Optional[psutil.Process] = field(default=None, repr=False, compare=False)

    @property
    def duration_seconds(self) -> float:
        """Elapsed recording time, measured up to end_time once stopped."""
        if self.end_time is None:
            return 0.0
        return max(0.0, self.end_time - self.start_time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "device_udid": self.device_udid,
            "bundle_id": self.bundle_id,
            "templates": list(self.templates),
            "trace_path": str(self.trace_path),
            "pid": self.pid,
            "status": self.status.value,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "file_size_mb": self.file_size_mb,
        }


@dataclass
class StartResult:
    """Result of starting a profiling session."""

    session_id: str
    trace_path: Path
    pid: int
    status: str = SessionStatus.RECORDING.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "trace_path": str(self.trace_path),
            "pid": self.pid,
            "status": self.status,
        }


@dataclass
class StopResult:
    """Result of stopping a profiling session and finalizing its trace."""

    session_id: str
    trace_path: Path
    duration_seconds: float
    file_size_mb: float
    status: str = SessionStatus.COMPLETED.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "trace_path": str(self.trace_path),
            "duration_seconds": round(self.duration_seconds, 3),
            "file_size_mb": round(self.file_size_mb, 3),
            "status": self.status,
        }
