"""
Unit tests for per-template export handling and result aggregation.
"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from xcprofiler.analysis.aggregator import TraceAggregator, summarize_export
from xcprofiler.analysis.exporters import ExportOutput, TraceExporter
from xcprofiler.models.results import LeaksData
from xcprofiler.system.commands import CommandResult

TRACE = Path("/tmp/instruments-traces/session-1/recording.trace")


class StaticExporter:
    """Exporter double returning canned output per template."""

    def __init__(self, outputs):
        self.outputs = outputs
        self.calls = []

    async def export(self, trace_path, template):
        self.calls.append(template)
        output = self.outputs[template]
        if isinstance(output, Exception):
            raise output
        return output


@pytest.mark.unit
class TestTraceExporter:
    @pytest.mark.asyncio
    async def test_export_success(self, time_profile_xml):
        exporter = TraceExporter(xcrun_path="/opt/xcrun", timeout=5.0, max_output_bytes=1024)
        mock_run = AsyncMock(return_value=CommandResult(0, time_profile_xml, ""))

        with patch("xcprofiler.analysis.exporters.run_command_async", mock_run):
            output = await exporter.export(TRACE, "time")

        assert output.error is None
        assert not output.truncated
        assert output.text == time_profile_xml
        argv = mock_run.call_args[0][0]
        assert argv[:3] == ["/opt/xcrun", "xctrace", "export"]
        assert mock_run.call_args[1] == {"timeout": 5.0, "max_output_bytes": 1024}

    @pytest.mark.asyncio
    async def test_leaks_exit_one_is_success(self, leaks_report):
        with patch("xcprofiler.analysis.exporters.run_command_async",
                   AsyncMock(return_value=CommandResult(1, leaks_report, ""))):
            output = await TraceExporter().export(TRACE, "leaks")
        assert output.error is None
        assert not output.truncated

    @pytest.mark.asyncio
    async def test_unreadable_bundle_degrades_leaks(self):
        with patch("xcprofiler.analysis.exporters.run_command_async",
                   AsyncMock(return_value=CommandResult(1, "", "cannot examine process\n"))):
            output = await TraceExporter().export(TRACE, "leaks")

        assert output.error == "cannot examine process"
        data, degraded = summarize_export(output)
        assert degraded
        assert data.leak_count == 0

    @pytest.mark.asyncio
    async def test_failure_is_reported(self):
        with patch("xcprofiler.analysis.exporters.run_command_async",
                   AsyncMock(return_value=CommandResult(3, "", "Document is corrupt\n"))):
            output = await TraceExporter().export(TRACE, "allocations")
        assert output.error == "Document is corrupt"

    @pytest.mark.asyncio
    async def test_timeout_and_truncation(self):
        exporter = TraceExporter(timeout=2.0)
        with patch("xcprofiler.analysis.exporters.run_command_async",
                   AsyncMock(return_value=CommandResult(-9, "<row>", "", timed_out=True))):
            assert "timed out" in (await exporter.export(TRACE, "time")).error
        with patch("xcprofiler.analysis.exporters.run_command_async",
                   AsyncMock(return_value=CommandResult(-9, "<row>", "", truncated=True))):
            output = await exporter.export(TRACE, "time")
        assert output.truncated
        assert output.error is None

    @pytest.mark.asyncio
    async def test_unknown_template(self):
        output = await TraceExporter().export(TRACE, "energy")
        assert output.error is not None


@pytest.mark.unit
class TestSummarizeExport:
    def test_clean_export(self, time_profile_xml):
        data, degraded = summarize_export(ExportOutput("time", time_profile_xml))
        assert not degraded
        assert data.heaviest_stack_trace == "main"

    def test_failed_export_is_zeroed(self):
        data, degraded = summarize_export(ExportOutput("leaks", "", error="boom"))
        assert degraded
        assert data == LeaksData()

    def test_truncated_export_is_parsed_leniently(self, allocations_xml):
        cut = allocations_xml[: allocations_xml.index("NSString")]
        data, degraded = summarize_export(ExportOutput("allocations", cut, truncated=True))
        assert degraded
        assert data.total_allocations == 16384 + 12

    def test_unparseable_leaks_report(self):
        data, degraded = summarize_export(ExportOutput("leaks", "garbage"))
        assert degraded
        assert data.leak_count == 0


@pytest.mark.unit
class TestTraceAggregator:
    @pytest.mark.asyncio
    async def test_all_templates(self, time_profile_xml, allocations_xml, leaks_report):
        exporter = StaticExporter({
            "time": ExportOutput("time", time_profile_xml),
            "allocations": ExportOutput("allocations", allocations_xml),
            "leaks": ExportOutput("leaks", leaks_report),
        })

        result = await TraceAggregator(exporter).analyze(
            TRACE, duration_seconds=5.0, trace_file_size_mb=12.5
        )

        assert result.summary.templates_analyzed == ["time", "allocations", "leaks"]
        assert result.summary.degraded_templates == []
        assert not result.is_partial
        assert result.time_profiler.top_10_symbols[0].symbol == "main"
        assert result.allocations.total_allocations == 20492
        assert result.leaks.leak_count == 2
        assert result.to_dict()["summary"]["trace_file_size_mb"] == 12.5

    @pytest.mark.asyncio
    async def test_only_requested_templates(self, leaks_report):
        exporter = StaticExporter({"leaks": ExportOutput("leaks", leaks_report)})

        result = await TraceAggregator(exporter).analyze(TRACE, templates=["leaks"])

        assert exporter.calls == ["leaks"]
        assert result.time_profiler is None
        assert result.allocations is None
        assert set(result.to_dict()) == {"summary", "leaks"}

    @pytest.mark.asyncio
    async def test_one_failing_template_degrades_only_itself(self, time_profile_xml, leaks_report):
        exporter = StaticExporter({
            "time": ExportOutput("time", time_profile_xml),
            "allocations": RuntimeError("exporter crashed"),
            "leaks": ExportOutput("leaks", leaks_report),
        })

        result = await TraceAggregator(exporter).analyze(TRACE)

        assert result.summary.degraded_templates == ["allocations"]
        assert result.is_partial
        assert result.allocations.total_allocations == 0
        assert result.allocations.top_10_allocations == []
        assert result.time_profiler.total_cpu_time_ms == pytest.approx(500.0)
        assert result.leaks.leak_count == 2
