"""
Unit tests for profiling pre-flight validation.
"""

from unittest.mock import AsyncMock, patch

import pytest

from xcprofiler.profiling.preflight import (
    check_recording_tools,
    validate_profiling_setup,
    validate_simulator_state,
)
from xcprofiler.system.devices import DeviceInfo
from xcprofiler.validation import DeviceNotReadyError, ToolUnavailableError

DEVICES = [
    DeviceInfo(udid="D1", name="iPhone 15", state="Booted", runtime="iOS 17 2"),
    DeviceInfo(udid="D2", name="iPhone 15 Pro", state="Shutdown", runtime="iOS 17 2"),
]


@pytest.mark.unit
class TestRecordingTools:
    @patch("xcprofiler.system.commands.shutil.which")
    def test_all_tools_present(self, mock_which):
        mock_which.return_value = "/usr/bin/tool"
        check_recording_tools(["xcrun", "xctrace"])

    @patch("xcprofiler.system.commands.shutil.which")
    def test_missing_tool(self, mock_which):
        mock_which.side_effect = lambda name: None if name == "xctrace" else "/usr/bin/xcrun"

        with pytest.raises(ToolUnavailableError) as exc_info:
            check_recording_tools(["xcrun", "xctrace"])

        assert exc_info.value.details == {"missing_tools": ["xctrace"]}
        assert "xcode-select --install" in exc_info.value.recovery


@pytest.mark.unit
class TestSimulatorState:
    @pytest.mark.asyncio
    async def test_booted_device(self):
        with patch("xcprofiler.profiling.preflight.list_devices", AsyncMock(return_value=DEVICES)):
            device = await validate_simulator_state("D1")
        assert device.name == "iPhone 15"

    @pytest.mark.asyncio
    async def test_unknown_device(self):
        with patch("xcprofiler.profiling.preflight.list_devices", AsyncMock(return_value=DEVICES)):
            with pytest.raises(DeviceNotReadyError) as exc_info:
                await validate_simulator_state("NOPE")
        assert "Invalid UDID" in exc_info.value.message
        assert "simctl list devices" in exc_info.value.recovery

    @pytest.mark.asyncio
    async def test_shutdown_device(self):
        with patch("xcprofiler.profiling.preflight.list_devices", AsyncMock(return_value=DEVICES)):
            with pytest.raises(DeviceNotReadyError) as exc_info:
                await validate_simulator_state("D2")
        assert exc_info.value.recovery == "Boot simulator first: `xcrun simctl boot D2`"
        assert exc_info.value.details["state"] == "Shutdown"


@pytest.mark.unit
class TestProfilingSetup:
    @pytest.mark.asyncio
    async def test_tools_checked_before_devices(self):
        list_mock = AsyncMock(return_value=DEVICES)
        with patch("xcprofiler.system.commands.shutil.which", return_value=None), \
                patch("xcprofiler.profiling.preflight.list_devices", list_mock):
            with pytest.raises(ToolUnavailableError):
                await validate_profiling_setup("D1")
        list_mock.assert_not_called()

    @pytest.mark.asyncio
    async def test_passes_xcrun_path_and_timeout(self):
        list_mock = AsyncMock(return_value=DEVICES)
        with patch("xcprofiler.system.commands.shutil.which", return_value="/bin/x"), \
                patch("xcprofiler.profiling.preflight.list_devices", list_mock):
            device = await validate_profiling_setup(
                "D1", xcrun_path="/opt/xcrun", device_list_timeout=2.0
            )
        assert device.udid == "D1"
        list_mock.assert_awaited_once_with(xcrun_path="/opt/xcrun", timeout=2.0)
