"""
Configuration data models.

This module contains the configuration structure for the profiling subsystem,
loaded from `config.toml`.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List


@dataclass
class ProfilerConfig:
    """
    Configuration for profiling sessions and trace analysis.
    """

    # [profiler]
    # Root directory holding one sub-directory per session.
    traces_root: Path = Path("/tmp/instruments-traces")
    # Name of the trace bundle inside each session directory.
    trace_filename: str = "recording.trace"
    # Templates recorded and analyzed when the caller does not choose any.
    default_templates: List[str] = field(
        default_factory=lambda: ["time", "allocations", "leaks"]
    )
    # Launcher used for xctrace, leaks and simctl.
    xcrun_path: str = "xcrun"
    # Binaries that must resolve on PATH before a recording is started.
    required_tools: List[str] = field(default_factory=lambda: ["xcrun", "xctrace"])

    # [profiler.finalize]
    finalize_poll_interval: float = 0.5
    finalize_timeout: float = 30.0

    # [profiler.retention]
    retention_max_age_hours: float = 24.0

    # [profiler.export]
    export_timeout: float = 120.0
    max_export_bytes: int = 50 * 1024 * 1024

    # [profiler.devices]
    device_list_timeout: float = 5.0

    @property
    def retention_max_age_seconds(self) -> float:
        return self.retention_max_age_hours * 3600.0
