"""
System interaction utilities.

Command execution with bounded output, tool availability checks and the
simulator device inventory.
"""

from .commands import (
    CommandResult,
    check_tool_installed,
    find_missing_tools,
    run_command,
    run_command_async,
)
from .devices import DeviceInfo, list_devices, parse_device_list

__all__ = [
    # Commands
    "CommandResult",
    "check_tool_installed",
    "find_missing_tools",
    "run_command",
    "run_command_async",
    # Devices
    "DeviceInfo",
    "list_devices",
    "parse_device_list",
]
