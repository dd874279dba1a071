"""
Exception hierarchy and error management for profiling operations.

Every error that crosses the tool-call boundary is a ProfilerError carrying a
machine-readable code, a human-readable message and an optional recovery hint.
"""

import json
import logging
import sys
from enum import Enum
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ProfilerError(Exception):
    """
    Base class for all profiling errors.

    Attributes:
        code: Stable machine-readable error code
        recovery: Optional remediation hint shown to the caller
        details: Optional structured context (command, stderr, field, ...)
    """

    default_code = "UNKNOWN_ERROR"
    default_recovery: Optional[str] = None

    def __init__(self, message: str, code: Optional[str] = None,
                 recovery: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.recovery = recovery if recovery is not None else self.default_recovery
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for structured responses."""
        data: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.recovery:
            data["recovery"] = self.recovery
        if self.details:
            data["details"] = self.details
        return data

    def to_tool_result(self) -> Dict[str, Any]:
        """Render the error in the tool-call result format."""
        lines = [f"Error: {self.message}"]
        if self.code != ProfilerError.default_code:
            lines.append(f"Code: {self.code}")
        if self.recovery:
            lines.append(f"\nSuggestion: {self.recovery}")
        if self.details:
            lines.append(f"\nDetails: {json.dumps(self.details, indent=2, default=str)}")
        return {
            "content": [{"type": "text", "text": "\n".join(lines)}],
            "isError": True,
        }


class ValidationError(ProfilerError):
    """Raised when tool arguments or configuration values are invalid."""

    default_code = "VALIDATION_ERROR"
    default_recovery = "Check parameter values and types"

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message, details={"field": field_name} if field_name else None)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class ToolUnavailableError(ProfilerError):
    """A required command-line tool is missing or could not be executed."""

    default_code = "TOOL_UNAVAILABLE"
    default_recovery = "Install Xcode Command Line Tools: `xcode-select --install`"


class DeviceNotReadyError(ProfilerError):
    """The target simulator is unknown or not booted."""

    default_code = "DEVICE_NOT_READY"
    default_recovery = "List simulators: `xcrun simctl list devices`"


class SessionNotFoundError(ProfilerError):
    """No profiling session is registered under the given id."""

    default_code = "SESSION_NOT_FOUND"
    default_recovery = "Start a new session with instruments_start_profiling"

    def __init__(self, session_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Profiling session not found: {session_id}",
            details={"session_id": session_id},
        )
        self.session_id = session_id


class SessionStateError(ProfilerError):
    """An operation is not valid for the session's current status."""

    default_code = "INVALID_SESSION_STATE"
    default_recovery = "Stop the session with instruments_stop_profiling before analyzing it"


class FinalizeTimeoutError(ProfilerError):
    """The trace bundle did not appear or stabilize before the finalize timeout."""

    default_code = "FINALIZE_TIMEOUT"
    default_recovery = (
        "The recording may still be finalizing; retry instruments_stop_profiling "
        "or check that the app is still installed on the simulator"
    )


class TraceNotFoundError(ProfilerError):
    """The trace bundle to analyze does not exist."""

    default_code = "TRACE_NOT_FOUND"
    default_recovery = "Pass the trace_path returned by instruments_stop_profiling"


class StorageError(ProfilerError):
    """The trace storage root could not be created or written."""

    default_code = "STORAGE_ERROR"
    default_recovery = "Check permissions of the trace storage directory"


class ParseFailure(ProfilerError):
    """
    Export output could not be parsed.

    Recovered locally by the analysis pipeline and never surfaced to callers.
    """

    default_code = "PARSE_FAILURE"


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=True)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "error":
        effective_logger.error(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=True)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Handle CLI-related errors and exit."""
    exit_code = kwargs.pop('exit_code', 1)
    severity = kwargs.pop('severity', ErrorSeverity.ERROR)

    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)
    if isinstance(error, ProfilerError) and error.recovery:
        effective_logger = kwargs.get('logger') or logger
        effective_logger.info(f"Suggestion: {error.recovery}")

    sys.exit(exit_code)
