"""
Pre-flight validation for profiling sessions.

Runs before any process is spawned, so a failure here never leaves an
orphaned recorder or a half-registered session behind.
"""

import logging
from typing import Sequence

from ..system.commands import find_missing_tools
from ..system.devices import DeviceInfo, list_devices
from ..validation import DeviceNotReadyError, ToolUnavailableError

logger = logging.getLogger(__name__)


def check_recording_tools(required_tools: Sequence[str]) -> None:
    """
    Confirm every recording tool binary resolves on PATH.

    Raises:
        ToolUnavailableError: Naming the missing tools
    """
    missing = find_missing_tools(required_tools)
    if missing:
        raise ToolUnavailableError(
            f"Required profiling tools not found on PATH: {', '.join(missing)}",
            details={"missing_tools": missing},
        )


async def validate_simulator_state(
    device_udid: str,
    xcrun_path: str = "xcrun",
    timeout: float = 5.0,
) -> DeviceInfo:
    """
    Confirm the simulator exists and is booted.

    Returns:
        The matching device

    Raises:
        DeviceNotReadyError: If the device is unknown, not booted or the
            inventory cannot be read
    """
    devices = await list_devices(xcrun_path=xcrun_path, timeout=timeout)
    device = next((d for d in devices if d.udid == device_udid), None)

    if device is None:
        raise DeviceNotReadyError(
            f"Invalid UDID: no simulator with UDID {device_udid}",
            details={"device_udid": device_udid},
        )
    if not device.is_ready:
        raise DeviceNotReadyError(
            f"Simulator {device.name} ({device_udid}) is {device.state}, not booted",
            recovery=f"Boot simulator first: `xcrun simctl boot {device_udid}`",
            details={"device_udid": device_udid, "state": device.state},
        )
    return device


async def validate_profiling_setup(
    device_udid: str,
    required_tools: Sequence[str] = ("xcrun", "xctrace"),
    xcrun_path: str = "xcrun",
    device_list_timeout: float = 5.0,
) -> DeviceInfo:
    """
    Combined pre-flight validation: tools first, then device state.

    Raises:
        ToolUnavailableError: If a recording tool is missing
        DeviceNotReadyError: If the device is not usable
    """
    check_recording_tools(required_tools)
    device = await validate_simulator_state(
        device_udid, xcrun_path=xcrun_path, timeout=device_list_timeout
    )
    logger.info(f"Pre-flight checks passed for {device.name} ({device.udid}, {device.runtime})")
    return device
