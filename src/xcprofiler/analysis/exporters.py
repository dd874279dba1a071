"""
Per-template trace export.

Each template is exported by one command whose stdout is the only data
source. Output is read through the bounded command runner, so a large trace
bundle is never loaded in full.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..profiling.command_builder import build_export_command
from ..system.commands import CommandResult, run_command_async

logger = logging.getLogger(__name__)


@dataclass
class ExportOutput:
    """Raw export of one template."""

    template: str
    text: str
    # Why the export is unusable or incomplete, None when it is clean.
    error: Optional[str] = None
    truncated: bool = False


class TraceExporter:
    """
    Runs the export command for each template of a trace bundle.

    Args:
        xcrun_path: Launcher for xctrace and leaks
        timeout: Seconds allowed per export
        max_output_bytes: Upper bound on captured stdout per export
    """

    def __init__(self, xcrun_path: str = "xcrun", timeout: float = 120.0,
                 max_output_bytes: int = 50 * 1024 * 1024):
        self.xcrun_path = xcrun_path
        self.timeout = timeout
        self.max_output_bytes = max_output_bytes

    async def export(self, trace_path: Path, template: str) -> ExportOutput:
        """Export one template's table; failures are reported, never raised."""
        try:
            argv = build_export_command(trace_path, template, xcrun_path=self.xcrun_path)
        except ValueError as e:
            return ExportOutput(template=template, text="", error=str(e))

        logger.info(f"Exporting '{template}' data from {trace_path}")
        result = await run_command_async(
            argv, timeout=self.timeout, max_output_bytes=self.max_output_bytes
        )
        return self._to_output(template, result)

    def _to_output(self, template: str, result: CommandResult) -> ExportOutput:
        if result.timed_out:
            return ExportOutput(template, result.stdout,
                                error=f"export timed out after {self.timeout:g}s")
        if result.truncated:
            logger.warning(f"Export of '{template}' truncated at {self.max_output_bytes} bytes")
            return ExportOutput(template, result.stdout, truncated=True)
        if template == "leaks" and result.returncode == 1 and result.stdout:
            # `leaks` exits 1 when it found leaks; the report is still complete.
            return ExportOutput(template, result.stdout)
        if result.returncode != 0:
            stderr = result.stderr.strip()
            logger.warning(f"Export of '{template}' failed ({result.returncode}): {stderr}")
            return ExportOutput(template, result.stdout,
                                error=stderr or f"exit code {result.returncode}")
        return ExportOutput(template, result.stdout)
