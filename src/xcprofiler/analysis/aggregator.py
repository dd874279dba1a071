"""
Trace analysis aggregation.

Exports and parses every requested template concurrently and combines the
per-template summaries into one AnalysisResult. A template whose export or
parse fails contributes a zero-valued summary and is listed in
`summary.degraded_templates`; it never fails the whole analysis.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence, Tuple

from ..models.results import (
    AllocationsData,
    AnalysisResult,
    AnalysisSummary,
    LeaksData,
    TimeProfilerData,
)
from ..validation import ErrorSeverity, ParseFailure, handle_error
from .exporters import ExportOutput, TraceExporter
from .parsers import (
    parse_allocations_xml,
    parse_allocations_xml_or_raise,
    parse_leaks_output,
    parse_leaks_output_or_raise,
    parse_time_profiler_xml,
    parse_time_profiler_xml_or_raise,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES = ("time", "allocations", "leaks")


@dataclass(frozen=True)
class TemplateParser:
    strict: Callable[[str], Any]
    lenient: Callable[[str], Any]
    empty: Callable[[], Any]
    result_field: str


TEMPLATE_PARSERS: Dict[str, TemplateParser] = {
    "time": TemplateParser(
        parse_time_profiler_xml_or_raise, parse_time_profiler_xml,
        TimeProfilerData, "time_profiler",
    ),
    "allocations": TemplateParser(
        parse_allocations_xml_or_raise, parse_allocations_xml,
        AllocationsData, "allocations",
    ),
    "leaks": TemplateParser(
        parse_leaks_output_or_raise, parse_leaks_output,
        LeaksData, "leaks",
    ),
}


def summarize_export(output: ExportOutput) -> Tuple[Any, bool]:
    """
    Turn one export into its summary.

    Returns:
        (summary, degraded) where degraded is True if the summary is zeroed
        or built from incomplete data
    """
    parser = TEMPLATE_PARSERS[output.template]

    if output.error is not None:
        logger.warning(f"Template '{output.template}' export failed: {output.error}")
        return parser.empty(), True

    if output.truncated:
        return parser.lenient(output.text), True

    try:
        return parser.strict(output.text), False
    except ParseFailure as e:
        logger.warning(f"Template '{output.template}' parsed partially: {e.message}")
        return parser.lenient(output.text), True


class TraceAggregator:
    """Combines per-template exports of one trace bundle into an AnalysisResult."""

    def __init__(self, exporter: TraceExporter):
        self.exporter = exporter

    async def _analyze_template(self, trace_path: Path, template: str) -> Tuple[Any, bool]:
        try:
            output = await self.exporter.export(trace_path, template)
            return summarize_export(output)
        except Exception as e:
            handle_error(
                error=e,
                context=f"analyzing template '{template}'",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger,
            )
            return TEMPLATE_PARSERS[template].empty(), True

    async def analyze(
        self,
        trace_path: Path,
        templates: Sequence[str] = DEFAULT_TEMPLATES,
        duration_seconds: float = 0.0,
        trace_file_size_mb: float = 0.0,
    ) -> AnalysisResult:
        """
        Export, parse and combine the requested templates.

        Args:
            trace_path: Trace bundle to analyze
            templates: Template short names, in reporting order
            duration_seconds: Recording duration for the summary block
            trace_file_size_mb: Bundle size for the summary block
        """
        templates = list(templates)
        outcomes = await asyncio.gather(
            *(self._analyze_template(trace_path, t) for t in templates)
        )

        summary = AnalysisSummary(
            duration_seconds=duration_seconds,
            templates_analyzed=templates,
            trace_file_size_mb=trace_file_size_mb,
        )
        result = AnalysisResult(summary=summary)
        for template, (data, degraded) in zip(templates, outcomes):
            setattr(result, TEMPLATE_PARSERS[template].result_field, data)
            if degraded:
                summary.degraded_templates.append(template)

        logger.info(
            f"Analyzed {trace_path}: templates={templates}, "
            f"degraded={summary.degraded_templates or 'none'}"
        )
        return result
