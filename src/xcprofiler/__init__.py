"""
xcprofiler: Instruments profiling sessions for iOS simulator apps.

This package records an app with `xcrun xctrace` across separate tool calls
(start, stop, analyze) and condenses the resulting trace bundle into a
compact summary of CPU hotspots, memory allocations and leaks.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Session and analysis result data structures
- validation: Error taxonomy and argument validation
- system: Command execution and simulator inventory
- profiling: Session lifecycle, recorder supervision and retention
- analysis: Trace export, parsing and aggregation
- tools: Tool-call definitions wrapping the Profiler
- cli: Command-line interface

Usage:
    From command line:
        xcprofiler profile --device <udid> --bundle com.example.App --duration 10

    Programmatically:
        from xcprofiler import Profiler
        profiler = Profiler()
        started = await profiler.start("<udid>", "com.example.App")
        stopped = await profiler.stop(started.session_id)
        summary = await profiler.analyze(session_id=started.session_id)
"""

# Main interfaces
from .config import get_config, clear_config_cache, set_config_path
from .profiling import Profiler, SessionStore
from .tools import ToolDefinition, build_profiling_tools, register_profiling_tools

# Model classes for external use
from .models import (
    AnalysisResult,
    ProfilerConfig,
    Session,
    SessionStatus,
    StartResult,
    StopResult,
)

# Errors
from .validation import (
    DeviceNotReadyError,
    FinalizeTimeoutError,
    ProfilerError,
    SessionNotFoundError,
    SessionStateError,
    StorageError,
    ToolUnavailableError,
    TraceNotFoundError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "Profiler",
    "SessionStore",
    "ToolDefinition",
    "build_profiling_tools",
    "register_profiling_tools",
    # Models
    "AnalysisResult",
    "ProfilerConfig",
    "Session",
    "SessionStatus",
    "StartResult",
    "StopResult",
    # Errors
    "ProfilerError",
    "ValidationError",
    "ToolUnavailableError",
    "DeviceNotReadyError",
    "SessionNotFoundError",
    "SessionStateError",
    "FinalizeTimeoutError",
    "TraceNotFoundError",
    "StorageError",
]
