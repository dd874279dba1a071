"""
Profiling session lifecycle.

Components:
- Profiler: start/stop/analyze orchestration
- SessionStore: in-memory session registry
- ProcessSupervisor: recorder spawn, interrupt and finalize wait
- command_builder: xctrace record/export argument lists
- preflight: tool and simulator checks
- retention: trace directory creation and stale trace sweeping
"""

from .command_builder import TEMPLATE_MAPPING, build_export_command, build_record_command
from .preflight import validate_profiling_setup
from .process_manager import ProcessSupervisor, TimeoutConstants
from .profiler import Profiler
from .retention import cleanup_old_traces, ensure_trace_directory
from .session_store import SessionStore

__all__ = [
    "Profiler",
    "SessionStore",
    "ProcessSupervisor",
    "TimeoutConstants",
    "TEMPLATE_MAPPING",
    "build_record_command",
    "build_export_command",
    "validate_profiling_setup",
    "cleanup_old_traces",
    "ensure_trace_directory",
]
