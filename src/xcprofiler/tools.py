"""
Tool-call surface for the profiling subsystem.

Each tool pairs a JSON input schema with an async handler. Handlers never
raise: every outcome is returned as a tool result dict of the form
``{"content": [{"type": "text", "text": ...}], "isError": bool}``.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .profiling import Profiler
from .validation import (
    ErrorSeverity,
    ProfilerError,
    ValidationError,
    VALID_TEMPLATES,
    handle_error,
    validate_non_empty_string,
)

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class ToolDefinition:
    """A named tool with its input schema and async handler."""

    name: str
    description: str
    input_schema: Dict[str, Any]
    handler: ToolHandler


_TEMPLATES_SCHEMA = {
    "type": "array",
    "items": {"type": "string", "enum": list(VALID_TEMPLATES)},
}


def text_result(payload: Any, is_error: bool = False) -> Dict[str, Any]:
    """Wrap a JSON-serializable payload (or plain text) as a tool result."""
    text = payload if isinstance(payload, str) else json.dumps(payload, indent=2)
    return {"content": [{"type": "text", "text": text}], "isError": is_error}


def _error_result(error: Exception, action: str) -> Dict[str, Any]:
    if isinstance(error, ProfilerError):
        handle_error(error, action, severity=ErrorSeverity.WARNING, reraise=False, logger=logger)
        return error.to_tool_result()
    handle_error(error, action, severity=ErrorSeverity.CRITICAL, reraise=False, logger=logger)
    return text_result(f"Error {action}: {error}", is_error=True)


def _require_arguments(arguments: Any) -> Dict[str, Any]:
    if arguments is None:
        return {}
    if not isinstance(arguments, dict):
        raise ValidationError("Tool arguments must be an object")
    return arguments


def _optional_string(arguments: Dict[str, Any], key: str) -> Optional[str]:
    value = arguments.get(key)
    if value is None or value == "":
        return None
    return validate_non_empty_string(value, field_name=key)


def build_profiling_tools(profiler: Profiler) -> List[ToolDefinition]:
    """Create the start/stop/analyze tool definitions bound to `profiler`."""

    async def start_handler(arguments: Dict[str, Any]) -> Dict[str, Any]:
        try:
            arguments = _require_arguments(arguments)
            result = await profiler.start(
                device_udid=arguments.get("device_udid"),
                bundle_id=arguments.get("bundle_id"),
                templates=arguments.get("templates"),
                launch_args=arguments.get("launch_args"),
                env_vars=arguments.get("env_vars"),
            )
            return text_result(result.to_dict())
        except Exception as e:
            return _error_result(e, "starting profiling")

    async def stop_handler(arguments: Dict[str, Any]) -> Dict[str, Any]:
        try:
            arguments = _require_arguments(arguments)
            session_id = validate_non_empty_string(arguments.get("session_id"), field_name="session_id")
            result = await profiler.stop(session_id)
            return text_result(result.to_dict())
        except Exception as e:
            return _error_result(e, "stopping profiling")

    async def analyze_handler(arguments: Dict[str, Any]) -> Dict[str, Any]:
        try:
            arguments = _require_arguments(arguments)
            result = await profiler.analyze(
                session_id=_optional_string(arguments, "session_id"),
                trace_path=_optional_string(arguments, "trace_path"),
                templates=arguments.get("templates"),
            )
            return text_result(result.to_dict())
        except Exception as e:
            return _error_result(e, "analyzing trace")

    return [
        ToolDefinition(
            name="instruments_start_profiling",
            description=(
                "Start Instruments profiling session for an iOS app with "
                "Time Profiler, Allocations, and Leaks templates"
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "device_udid": {"type": "string", "description": "iOS simulator UDID"},
                    "bundle_id": {
                        "type": "string",
                        "description": "App bundle identifier (e.g., com.example.MyApp)",
                    },
                    "templates": {
                        **_TEMPLATES_SCHEMA,
                        "description": 'Profiling templates to use (default: ["time", "allocations", "leaks"])',
                    },
                    "launch_args": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Optional app launch arguments",
                    },
                    "env_vars": {
                        "type": "object",
                        "additionalProperties": {"type": "string"},
                        "description": "Optional environment variables",
                    },
                },
                "required": ["device_udid", "bundle_id"],
            },
            handler=start_handler,
        ),
        ToolDefinition(
            name="instruments_stop_profiling",
            description="Stop active Instruments profiling session and finalize trace file",
            input_schema={
                "type": "object",
                "properties": {
                    "session_id": {"type": "string", "description": "Session ID from start_profiling"},
                },
                "required": ["session_id"],
            },
            handler=stop_handler,
        ),
        ToolDefinition(
            name="instruments_analyze_trace",
            description=(
                "Analyze Instruments trace file and return executive summary with "
                "top CPU hotspots, memory allocations, and leaks"
            ),
            input_schema={
                "type": "object",
                "properties": {
                    "session_id": {"type": "string", "description": "Session ID from start_profiling"},
                    "trace_path": {"type": "string", "description": "Path to existing .trace file"},
                    "templates": {
                        **_TEMPLATES_SCHEMA,
                        "description": (
                            "Which templates to analyze (default: the templates the session "
                            "recorded, or all three for trace_path)"
                        ),
                    },
                },
            },
            handler=analyze_handler,
        ),
    ]


def register_profiling_tools(registry: Dict[str, ToolDefinition], profiler: Profiler) -> None:
    """Register the profiling tools into a name -> definition registry."""
    for tool in build_profiling_tools(profiler):
        registry[tool.name] = tool
    logger.debug(f"Registered {len(registry)} tool(s)")
