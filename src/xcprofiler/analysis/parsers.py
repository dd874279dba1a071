"""
Parsers for exported trace data.

The exported tables are small and stable, so parsing is row and block
oriented text extraction rather than full XML parsing. Parsers never raise:
unparseable input degrades to a zero-valued summary, and callers that need
to know can use the *_or_raise variants.
"""

import logging
import math
import re
from typing import List, Tuple

from ..models.results import (
    AllocationEntry,
    AllocationsData,
    LeakRecord,
    LeaksData,
    SymbolEntry,
    TimeProfilerData,
)
from ..validation import ParseFailure

logger = logging.getLogger(__name__)

TOP_N = 10
BYTES_PER_MB = 1024 * 1024

_ROW_RE = re.compile(r"<row\b[^>]*>(.*?)</row>", re.DOTALL)
_LEAKS_HEADER_RE = re.compile(r"Process \d+: (\d+) leaks? for (\d+) total leaked bytes")
_LEAK_MARKER_RE = re.compile(r"^\s*Leak: (0x[0-9a-fA-F]+)\s+size=(\d+)", re.MULTILINE)
_COLUMN_SPLIT_RE = re.compile(r"\s{2,}")


def _tag_text(row: str, tag: str) -> str:
    match = re.search(rf"<{tag}\b[^>]*>(.*?)</{tag}>", row, re.DOTALL)
    if match is None:
        raise ParseFailure(f"row has no <{tag}> element")
    return match.group(1).strip()


def _finite_number(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ParseFailure(f"non-finite value: {text}")
    return value


def _percentage(value: float, total: float) -> float:
    return (value / total) * 100 if total > 0 else 0.0


def _time_rows(xml: str) -> Tuple[List[Tuple[str, float, float]], int]:
    rows = []
    skipped = 0
    for row in _ROW_RE.findall(xml):
        try:
            rows.append((
                _tag_text(row, "symbol"),
                _finite_number(_tag_text(row, "self-time")),
                _finite_number(_tag_text(row, "total-time")),
            ))
        except (ParseFailure, ValueError):
            skipped += 1
    return rows, skipped


def _summarize_time(rows: List[Tuple[str, float, float]]) -> TimeProfilerData:
    total_cpu_time_ms = sum(total for _, _, total in rows)
    ranked = sorted(rows, key=lambda r: r[2], reverse=True)

    top = [
        SymbolEntry(
            symbol=symbol,
            self_time_ms=self_time,
            total_time_ms=total,
            percentage=_percentage(total, total_cpu_time_ms),
        )
        for symbol, self_time, total in ranked[:TOP_N]
    ]
    return TimeProfilerData(
        total_cpu_time_ms=total_cpu_time_ms,
        heaviest_stack_trace=top[0].symbol if top else "",
        top_10_symbols=top,
    )


def parse_time_profiler_xml_or_raise(xml: str) -> TimeProfilerData:
    """
    Parse a Time Profiler export, raising ParseFailure on malformed rows.

    Rows are kept as given (no symbol de-duplication), ranked by total time.
    """
    rows, skipped = _time_rows(xml)
    if skipped:
        raise ParseFailure(f"{skipped} Time Profiler rows could not be parsed")
    return _summarize_time(rows)


def parse_time_profiler_xml(xml: str) -> TimeProfilerData:
    """Parse a Time Profiler export, skipping rows that cannot be read."""
    rows, skipped = _time_rows(xml)
    if skipped:
        logger.debug(f"Skipped {skipped} malformed Time Profiler rows")
    return _summarize_time(rows)


def _allocation_rows(xml: str) -> Tuple[List[Tuple[str, int, int]], int]:
    rows = []
    skipped = 0
    for row in _ROW_RE.findall(xml):
        try:
            rows.append((
                _tag_text(row, "category"),
                int(_tag_text(row, "size")),
                int(_tag_text(row, "count")),
            ))
        except (ParseFailure, ValueError):
            skipped += 1
    return rows, skipped


def _summarize_allocations(rows: List[Tuple[str, int, int]]) -> AllocationsData:
    total_size_bytes = sum(size for _, size, _ in rows)
    total_allocations = sum(count for _, _, count in rows)
    ranked = sorted(rows, key=lambda r: r[1], reverse=True)

    top = [
        AllocationEntry(
            category=category,
            size_mb=size / BYTES_PER_MB,
            count=count,
            percentage=_percentage(size, total_size_bytes),
        )
        for category, size, count in ranked[:TOP_N]
    ]
    return AllocationsData(
        peak_memory_mb=total_size_bytes / BYTES_PER_MB,
        total_allocations=total_allocations,
        living_allocations=total_allocations,
        top_10_allocations=top,
    )


def parse_allocations_xml_or_raise(xml: str) -> AllocationsData:
    """Parse an Allocations export, raising ParseFailure on malformed rows."""
    rows, skipped = _allocation_rows(xml)
    if skipped:
        raise ParseFailure(f"{skipped} Allocations rows could not be parsed")
    return _summarize_allocations(rows)


def parse_allocations_xml(xml: str) -> AllocationsData:
    """Parse an Allocations export, skipping rows that cannot be read."""
    rows, skipped = _allocation_rows(xml)
    if skipped:
        logger.debug(f"Skipped {skipped} malformed Allocations rows")
    return _summarize_allocations(rows)


def _parse_leak_block(address: str, size: str, body: str) -> LeakRecord:
    lines = body.splitlines()
    leak_type = ""
    stack_lines: List[str] = []
    in_stack = False

    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        if in_stack:
            stack_lines.append(stripped)
        elif stripped.startswith("Call stack:"):
            in_stack = True
            rest = stripped[len("Call stack:"):].strip()
            if rest:
                stack_lines.append(rest)
        elif not leak_type:
            # Columns are separated by runs of spaces: type, allocator, library
            leak_type = _COLUMN_SPLIT_RE.split(stripped)[0]

    return LeakRecord(
        address=address,
        size_bytes=int(size),
        type=leak_type,
        stack_trace="\n".join(stack_lines),
    )


def parse_leaks_output_or_raise(output: str) -> LeaksData:
    """
    Parse a `leaks` text report, raising ParseFailure if it has no header.
    """
    header = _LEAKS_HEADER_RE.search(output)
    if header is None:
        raise ParseFailure("leaks report has no 'Process N: ... total leaked bytes' header")

    leak_count = int(header.group(1))
    total_leaked_bytes = int(header.group(2))
    if leak_count == 0:
        return LeaksData()

    markers = list(_LEAK_MARKER_RE.finditer(output))
    leaks = []
    for index, marker in enumerate(markers):
        # Block ends at the next leak marker or end of input
        end = markers[index + 1].start() if index + 1 < len(markers) else len(output)
        # Skip the remainder of the marker line (zone, etc.)
        newline = output.find("\n", marker.end(), end)
        body = output[newline + 1:end] if newline != -1 else ""
        leaks.append(_parse_leak_block(marker.group(1), marker.group(2), body))

    return LeaksData(
        total_leaked_mb=total_leaked_bytes / BYTES_PER_MB,
        leak_count=leak_count,
        leaks=leaks,
    )


def parse_leaks_output(output: str) -> LeaksData:
    """Parse a `leaks` text report; malformed input yields an empty summary."""
    try:
        return parse_leaks_output_or_raise(output)
    except ParseFailure as e:
        logger.debug(f"Leaks report not parsed: {e}")
        return LeaksData()
