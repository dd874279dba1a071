"""
Trace analysis: per-template export, parsing and aggregation.
"""

from .aggregator import DEFAULT_TEMPLATES, TraceAggregator, summarize_export
from .exporters import ExportOutput, TraceExporter
from .parsers import (
    parse_allocations_xml,
    parse_leaks_output,
    parse_time_profiler_xml,
)

__all__ = [
    "DEFAULT_TEMPLATES",
    "TraceAggregator",
    "summarize_export",
    "ExportOutput",
    "TraceExporter",
    "parse_allocations_xml",
    "parse_leaks_output",
    "parse_time_profiler_xml",
]
