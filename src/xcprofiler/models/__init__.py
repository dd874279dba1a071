"""
Data models for the profiling subsystem.

Configuration Models:
- Profiler settings loaded from TOML

Session Models:
- Session records, lifecycle status and start/stop results

Result Models:
- Per-template trace summaries and the combined analysis result
"""

from .config import ProfilerConfig
from .results import (
    AllocationEntry,
    AllocationsData,
    AnalysisResult,
    AnalysisSummary,
    LeakRecord,
    LeaksData,
    SymbolEntry,
    TimeProfilerData,
)
from .session import Session, SessionStatus, StartResult, StopResult

__all__ = [
    # Configuration
    "ProfilerConfig",
    # Sessions
    "Session",
    "SessionStatus",
    "StartResult",
    "StopResult",
    # Results
    "SymbolEntry",
    "TimeProfilerData",
    "AllocationEntry",
    "AllocationsData",
    "LeakRecord",
    "LeaksData",
    "AnalysisSummary",
    "AnalysisResult",
]
