"""
Configuration validation utilities.

Turns the raw [profiler] table from config.toml into a validated
ProfilerConfig. Missing keys fall back to the dataclass defaults.
"""

import logging
from pathlib import Path
from typing import Any, Dict

from ..models.config import ProfilerConfig
from ..validation import (
    ValidationError,
    validate_non_empty_string,
    validate_positive_float,
    validate_positive_integer,
    validate_string_list,
    validate_templates,
)

logger = logging.getLogger(__name__)


def validate_profiler_config(profiler_data: Dict[str, Any]) -> ProfilerConfig:
    """
    Validate and create a ProfilerConfig from raw configuration data.

    Args:
        profiler_data: Raw [profiler] table from TOML

    Returns:
        Validated ProfilerConfig instance

    Raises:
        ValidationError: If validation fails
    """
    defaults = ProfilerConfig()
    finalize = profiler_data.get("finalize", {})
    retention = profiler_data.get("retention", {})
    export = profiler_data.get("export", {})
    devices = profiler_data.get("devices", {})

    traces_root = Path(validate_non_empty_string(
        profiler_data.get("traces_root", str(defaults.traces_root)),
        field_name="profiler.traces_root",
    ))
    if not traces_root.is_absolute():
        raise ValidationError(
            f"profiler.traces_root must be an absolute path, got {traces_root}",
            field_name="profiler.traces_root",
            value=str(traces_root),
        )

    trace_filename = validate_non_empty_string(
        profiler_data.get("trace_filename", defaults.trace_filename),
        field_name="profiler.trace_filename",
    )
    if "/" in trace_filename:
        raise ValidationError(
            "profiler.trace_filename must be a bare file name",
            field_name="profiler.trace_filename",
            value=trace_filename,
        )

    default_templates = validate_templates(
        profiler_data.get("default_templates", defaults.default_templates),
        field_name="profiler.default_templates",
    )
    xcrun_path = validate_non_empty_string(
        profiler_data.get("xcrun_path", defaults.xcrun_path),
        field_name="profiler.xcrun_path",
    )
    required_tools = validate_string_list(
        profiler_data.get("required_tools", defaults.required_tools),
        field_name="profiler.required_tools",
    )

    finalize_poll_interval = validate_positive_float(
        finalize.get("poll_interval_seconds", defaults.finalize_poll_interval),
        min_value=0.01,
        max_value=10.0,
        field_name="profiler.finalize.poll_interval_seconds",
    )
    finalize_timeout = validate_positive_float(
        finalize.get("timeout_seconds", defaults.finalize_timeout),
        min_value=0.1,
        max_value=600.0,
        field_name="profiler.finalize.timeout_seconds",
    )
    if finalize_poll_interval > finalize_timeout:
        raise ValidationError(
            "profiler.finalize.poll_interval_seconds must not exceed timeout_seconds",
            field_name="profiler.finalize.poll_interval_seconds",
            value=finalize_poll_interval,
        )

    retention_max_age_hours = validate_positive_float(
        retention.get("max_age_hours", defaults.retention_max_age_hours),
        min_value=0.0,
        field_name="profiler.retention.max_age_hours",
    )

    export_timeout = validate_positive_float(
        export.get("timeout_seconds", defaults.export_timeout),
        min_value=1.0,
        max_value=3600.0,
        field_name="profiler.export.timeout_seconds",
    )
    max_output_mb = validate_positive_integer(
        export.get("max_output_mb", defaults.max_export_bytes // (1024 * 1024)),
        min_value=1,
        max_value=1024,
        field_name="profiler.export.max_output_mb",
    )

    device_list_timeout = validate_positive_float(
        devices.get("list_timeout_seconds", defaults.device_list_timeout),
        min_value=0.5,
        max_value=120.0,
        field_name="profiler.devices.list_timeout_seconds",
    )

    config = ProfilerConfig(
        traces_root=traces_root,
        trace_filename=trace_filename,
        default_templates=default_templates,
        xcrun_path=xcrun_path,
        required_tools=required_tools,
        finalize_poll_interval=finalize_poll_interval,
        finalize_timeout=finalize_timeout,
        retention_max_age_hours=retention_max_age_hours,
        export_timeout=export_timeout,
        max_export_bytes=max_output_mb * 1024 * 1024,
        device_list_timeout=device_list_timeout,
    )
    logger.debug(f"Validated profiler configuration: {config}")
    return config
