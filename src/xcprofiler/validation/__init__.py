"""
Validation and error handling for the xcprofiler package.

This module provides the profiler error taxonomy, argument validation and
consistent error reporting across the application.
"""

from .exceptions import (
    DeviceNotReadyError,
    ErrorSeverity,
    FinalizeTimeoutError,
    ParseFailure,
    ProfilerError,
    SessionNotFoundError,
    SessionStateError,
    StorageError,
    ToolUnavailableError,
    TraceNotFoundError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
)
from .validators import (
    VALID_TEMPLATES,
    validate_env_vars,
    validate_non_empty_string,
    validate_positive_float,
    validate_positive_integer,
    validate_string_list,
    validate_templates,
)

__all__ = [
    # Errors
    "ErrorSeverity",
    "ProfilerError",
    "ValidationError",
    "ToolUnavailableError",
    "DeviceNotReadyError",
    "SessionNotFoundError",
    "SessionStateError",
    "FinalizeTimeoutError",
    "TraceNotFoundError",
    "StorageError",
    "ParseFailure",
    "handle_error",
    "handle_config_error",
    "handle_cli_error",
    # Validators
    "VALID_TEMPLATES",
    "validate_env_vars",
    "validate_non_empty_string",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_string_list",
    "validate_templates",
]
