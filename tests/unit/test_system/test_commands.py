"""
Unit tests for the bounded command runner and tool checks.
"""

import sys
from unittest.mock import patch

import pytest

from xcprofiler.system.commands import (
    check_tool_installed,
    find_missing_tools,
    run_command,
    run_command_async,
)


@pytest.mark.unit
class TestRunCommand:
    def test_captures_stdout_and_stderr(self):
        result = run_command([
            sys.executable, "-c",
            "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)",
        ])
        assert result.returncode == 3
        assert result.stdout.strip() == "out"
        assert result.stderr.strip() == "err"
        assert not result.success

    def test_output_limit_truncates(self):
        result = run_command(
            [sys.executable, "-c", "import sys; sys.stdout.write('x' * 200000)"],
            max_output_bytes=1000,
        )
        assert result.truncated
        assert len(result.stdout) == 1000
        assert not result.success

    def test_timeout_kills_process(self):
        result = run_command(
            [sys.executable, "-c", "import time; time.sleep(10)"],
            timeout=0.2,
        )
        assert result.timed_out
        assert not result.success

    def test_missing_binary(self, temp_dir):
        result = run_command([str(temp_dir / "nope")])
        assert result.returncode == -1
        assert "Command not found" in result.stderr

    @pytest.mark.asyncio
    async def test_async_wrapper(self):
        result = await run_command_async([sys.executable, "-c", "print('hi')"])
        assert result.success
        assert result.stdout.strip() == "hi"


@pytest.mark.unit
class TestToolChecks:
    @patch("xcprofiler.system.commands.shutil.which")
    def test_check_tool_installed(self, mock_which):
        mock_which.return_value = "/usr/bin/xcrun"
        assert check_tool_installed("xcrun")
        mock_which.return_value = None
        assert not check_tool_installed("xcrun")

    @patch("xcprofiler.system.commands.shutil.which")
    def test_find_missing_tools_keeps_order(self, mock_which):
        mock_which.side_effect = lambda name: "/bin/" + name if name == "xcrun" else None
        assert find_missing_tools(["xctrace", "xcrun", "leaks"]) == ["xctrace", "leaks"]
