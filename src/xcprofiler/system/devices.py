"""
Simulator device inventory.

Parses `xcrun simctl list devices -j` into DeviceInfo records. The simctl
JSON schema has drifted between Xcode releases, so each field is read through
an explicit, ordered list of candidate keys instead of ad hoc lookups.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..validation import DeviceNotReadyError
from .commands import run_command_async

logger = logging.getLogger(__name__)

# Candidate keys per field, first present key wins.
DEVICE_FIELD_FALLBACKS: Dict[str, Tuple[str, ...]] = {
    "udid": ("udid", "UDID"),
    "name": ("name", "deviceName"),
    "state": ("state", "status"),
    "availability": ("isAvailable", "available", "availability"),
}

RUNTIME_PREFIX = "com.apple.CoreSimulator.SimRuntime."
READY_STATES = frozenset({"booted", "running"})


@dataclass
class DeviceInfo:
    udid: str
    name: str
    state: str
    runtime: str

    @property
    def is_ready(self) -> bool:
        return self.state.lower() in READY_STATES

    def to_dict(self) -> Dict[str, str]:
        return {
            "udid": self.udid,
            "name": self.name,
            "state": self.state,
            "runtime": self.runtime,
        }


def _read_field(entry: Dict[str, Any], field_name: str) -> Optional[Any]:
    for key in DEVICE_FIELD_FALLBACKS[field_name]:
        if key in entry and entry[key] is not None:
            return entry[key]
    return None


def _is_available(value: Optional[Any]) -> bool:
    # Missing availability means available; older Xcode used the string "(available)".
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("(available)", "available", "true", "yes")


def _normalize_runtime(runtime_key: str) -> str:
    return runtime_key.replace(RUNTIME_PREFIX, "").replace("-", " ")


def parse_device_list(output: str) -> List[DeviceInfo]:
    """
    Parse simctl JSON output into iOS devices that are available.

    Raises:
        ValueError: If the output is not the expected JSON document
    """
    data = json.loads(output)
    runtimes = data.get("devices") if isinstance(data, dict) else None
    if not isinstance(runtimes, dict):
        raise ValueError("simctl output has no 'devices' mapping")

    devices: List[DeviceInfo] = []
    for runtime_key, entries in runtimes.items():
        # Skip watchOS, tvOS and other runtimes
        if "iOS" not in runtime_key:
            continue
        for entry in entries or []:
            if not isinstance(entry, dict):
                continue
            udid = _read_field(entry, "udid")
            if not udid or not _is_available(_read_field(entry, "availability")):
                continue
            devices.append(DeviceInfo(
                udid=str(udid),
                name=str(_read_field(entry, "name") or ""),
                state=str(_read_field(entry, "state") or "Unknown"),
                runtime=_normalize_runtime(runtime_key),
            ))
    return devices


async def list_devices(xcrun_path: str = "xcrun", timeout: float = 5.0) -> List[DeviceInfo]:
    """
    Query the simulator inventory.

    Raises:
        DeviceNotReadyError: If simctl fails or its output cannot be parsed
    """
    result = await run_command_async(
        [xcrun_path, "simctl", "list", "devices", "-j"], timeout=timeout
    )
    if not result.success:
        raise DeviceNotReadyError(
            "Failed to list simulator devices",
            details={"stderr": result.stderr.strip(), "returncode": result.returncode},
            recovery="Ensure Xcode and simulators are properly installed",
        )
    try:
        devices = parse_device_list(result.stdout)
    except ValueError as e:
        raise DeviceNotReadyError(
            "Failed to parse simulator device list",
            details={"error": str(e)},
            recovery="Ensure Xcode and simulators are properly installed",
        ) from e

    logger.debug(f"Found {len(devices)} available iOS simulator devices")
    return devices
