"""
Trace analysis result models.

These structures are ephemeral: they are produced by the parsers, combined by
the aggregator and serialized for the caller, never persisted. Every ranked
list holds at most ten entries sorted by its ranking metric.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class SymbolEntry:
    symbol: str
    self_time_ms: float
    total_time_ms: float
    percentage: float


@dataclass
class TimeProfilerData:
    """CPU hotspots from the Time Profiler template."""

    total_cpu_time_ms: float = 0.0
    # Name of the top-ranked symbol, or "" when no rows were found.
    heaviest_stack_trace: str = ""
    top_10_symbols: List[SymbolEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_cpu_time_ms": self.total_cpu_time_ms,
            "heaviest_stack_trace": self.heaviest_stack_trace,
            "top_10_symbols": [
                {
                    "symbol": s.symbol,
                    "self_time_ms": s.self_time_ms,
                    "total_time_ms": s.total_time_ms,
                    "percentage": s.percentage,
                }
                for s in self.top_10_symbols
            ],
        }


@dataclass
class AllocationEntry:
    category: str
    size_mb: float
    count: int
    percentage: float


@dataclass
class AllocationsData:
    """Memory allocation summary from the Allocations template."""

    peak_memory_mb: float = 0.0
    total_allocations: int = 0
    # Approximation: reported from the same aggregate count as total_allocations.
    living_allocations: int = 0
    top_10_allocations: List[AllocationEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "peak_memory_mb": self.peak_memory_mb,
            "total_allocations": self.total_allocations,
            "living_allocations": self.living_allocations,
            "top_10_allocations": [
                {
                    "category": a.category,
                    "size_mb": a.size_mb,
                    "count": a.count,
                    "percentage": a.percentage,
                }
                for a in self.top_10_allocations
            ],
        }


@dataclass
class LeakRecord:
    address: str
    size_bytes: int
    type: str
    stack_trace: str


@dataclass
class LeaksData:
    """Leak report summary. Count and byte total come from the report header."""

    total_leaked_mb: float = 0.0
    leak_count: int = 0
    leaks: List[LeakRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_leaked_mb": self.total_leaked_mb,
            "leak_count": self.leak_count,
            "leaks": [
                {
                    "address": leak.address,
                    "size_bytes": leak.size_bytes,
                    "type": leak.type,
                    "stack_trace": leak.stack_trace,
                }
                for leak in self.leaks
            ],
        }


@dataclass
class AnalysisSummary:
    duration_seconds: float
    templates_analyzed: List[str]
    trace_file_size_mb: float
    # Templates whose export or parse degraded to a zero-valued result.
    degraded_templates: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "duration_seconds": round(self.duration_seconds, 3),
            "templates_analyzed": list(self.templates_analyzed),
            "trace_file_size_mb": round(self.trace_file_size_mb, 3),
            "degraded_templates": list(self.degraded_templates),
        }


@dataclass
class AnalysisResult:
    """Combined result of analyzing one trace bundle."""

    summary: AnalysisSummary
    time_profiler: Optional[TimeProfilerData] = None
    allocations: Optional[AllocationsData] = None
    leaks: Optional[LeaksData] = None

    @property
    def is_partial(self) -> bool:
        return bool(self.summary.degraded_templates)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"summary": self.summary.to_dict()}
        if self.time_profiler is not None:
            data["time_profiler"] = self.time_profiler.to_dict()
        if self.allocations is not None:
            data["allocations"] = self.allocations.to_dict()
        if self.leaks is not None:
            data["leaks"] = self.leaks.to_dict()
        return data
