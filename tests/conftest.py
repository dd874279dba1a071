"""
Pytest configuration and shared fixtures for the xcprofiler test suite.

This module provides common fixtures, sample export data and a fake `xcrun`
executable shared by the unit and end-to-end tests.
"""

import shutil
import stat
import sys
import tempfile
import textwrap
import time
from pathlib import Path
from typing import Any, Dict
from unittest.mock import Mock

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "e2e: mark test as an end-to-end test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Sample Export Data
# ============================================================================

TIME_PROFILE_XML = """<?xml version="1.0"?>
<trace-query-result>
<node xpath='//trace-toc[1]/run[1]/data[1]/table[1]'>
<row><symbol>main</symbol><self-time>5.0</self-time><total-time>300.0</total-time></row>
<row><symbol>-[ViewController viewDidLoad]</symbol><self-time>40.0</self-time><total-time>120.0</total-time></row>
<row><symbol>objc_msgSend</symbol><self-time>60.0</self-time><total-time>60.0</total-time></row>
<row><symbol>CFRunLoopRun</symbol><self-time>20.0</self-time><total-time>20.0</total-time></row>
</node>
</trace-query-result>
"""

ALLOCATIONS_XML = """<?xml version="1.0"?>
<trace-query-result>
<node xpath='//trace-toc[1]/run[1]/data[1]/table[2]'>
<row><category>Malloc 64 Bytes</category><size>1048576</size><count>16384</count></row>
<row><category>UIImage</category><size>3145728</size><count>12</count></row>
<row><category>NSString</category><size>524288</size><count>4096</count></row>
</node>
</trace-query-result>
"""

LEAKS_REPORT = """Process:         DemoApp [4242]
Path:            /Users/dev/Library/Developer/CoreSimulator/DemoApp.app/DemoApp

Process 4242: 2 leaks for 96 total leaked bytes.

Leak: 0x600000c04000  size=64  zone: MallocStackLoggingLiteZone_0x1
	NSMutableArray  ObjC  Foundation
	Call stack: 0x1 main | 0x2 -[AppDelegate setup]
Leak: 0x600000c05000  size=32  zone: MallocStackLoggingLiteZone_0x1
	__NSCFString  CFString  CoreFoundation
"""

NO_LEAKS_REPORT = """Process:         DemoApp [4242]

Process 4242: 0 leaks for 0 total leaked bytes.
"""

SIMCTL_DEVICES_JSON = """{
  "devices" : {
    "com.apple.CoreSimulator.SimRuntime.iOS-17-2" : [
      {"udid" : "D1", "name" : "iPhone 15", "state" : "Booted", "isAvailable" : true},
      {"udid" : "D2", "name" : "iPhone 15 Pro", "state" : "Shutdown", "isAvailable" : true},
      {"udid" : "D3", "name" : "iPhone 14", "state" : "Booted", "isAvailable" : false}
    ],
    "com.apple.CoreSimulator.SimRuntime.watchOS-10-2" : [
      {"udid" : "W1", "name" : "Apple Watch", "state" : "Booted", "isAvailable" : true}
    ]
  }
}
"""


@pytest.fixture
def time_profile_xml():
    return TIME_PROFILE_XML


@pytest.fixture
def allocations_xml():
    return ALLOCATIONS_XML


@pytest.fixture
def leaks_report():
    return LEAKS_REPORT


@pytest.fixture
def no_leaks_report():
    return NO_LEAKS_REPORT


@pytest.fixture
def simctl_devices_json():
    return SIMCTL_DEVICES_JSON


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_config_data():
    """Sample [profiler] configuration table for testing."""
    return {
        "traces_root": "/tmp/xcprofiler-test-traces",
        "trace_filename": "recording.trace",
        "default_templates": ["time", "allocations", "leaks"],
        "xcrun_path": "xcrun",
        "required_tools": ["xcrun", "xctrace"],
        "finalize": {
            "poll_interval_seconds": 0.5,
            "timeout_seconds": 30.0,
        },
        "retention": {
            "max_age_hours": 24.0,
        },
        "export": {
            "timeout_seconds": 120.0,
            "max_output_mb": 50,
        },
        "devices": {
            "list_timeout_seconds": 5.0,
        },
    }


@pytest.fixture
def config_files(temp_dir, sample_config_data):
    """Create a temporary configuration file for testing."""
    import toml

    config_file = temp_dir / "config.toml"
    with open(config_file, "w") as f:
        toml.dump({"profiler": sample_config_data}, f)

    return {"config": config_file, "dir": temp_dir}


@pytest.fixture
def profiler_config(temp_dir):
    """A ProfilerConfig rooted in a temporary directory with fast polling."""
    from xcprofiler.models.config import ProfilerConfig

    return ProfilerConfig(
        traces_root=temp_dir / "traces",
        finalize_poll_interval=0.05,
        finalize_timeout=2.0,
        export_timeout=10.0,
    )


@pytest.fixture
def session_factory(temp_dir):
    """Build Session records with sensible defaults."""
    from xcprofiler.models.session import Session, SessionStatus

    def _make(session_id: str = "session-1-abc", **overrides: Any) -> Session:
        fields: Dict[str, Any] = {
            "session_id": session_id,
            "device_udid": "D1",
            "bundle_id": "com.example.Demo",
            "templates": ["time", "allocations", "leaks"],
            "trace_path": temp_dir / "traces" / session_id / "recording.trace",
            "pid": 4242,
            "status": SessionStatus.RECORDING,
            "start_time": time.time(),
        }
        fields.update(overrides)
        return Session(**fields)

    return _make


@pytest.fixture
def mock_process_handle():
    """Mock psutil.Process handle for a live recorder."""
    handle = Mock()
    handle.pid = 4242
    handle.is_running.return_value = True
    handle.status.return_value = "running"
    return handle


# ============================================================================
# Fake xcrun
# ============================================================================

_FAKE_XCRUN_SOURCE = '''
import os
import signal
import sys
import time

TIME_PROFILE_XML = {time_xml!r}
ALLOCATIONS_XML = {alloc_xml!r}
LEAKS_REPORT = {leaks!r}
SIMCTL_DEVICES_JSON = {simctl!r}


def record(argv):
    output = argv[argv.index("--output") + 1]

    def finalize(signum, frame):
        os.makedirs(output, exist_ok=True)
        with open(os.path.join(output, "data.bin"), "wb") as f:
            f.write(b"x" * 4096)
        sys.exit(0)

    signal.signal(signal.SIGINT, finalize)
    deadline = time.time() + 60
    while time.time() < deadline:
        time.sleep(0.05)
    sys.exit(2)


def main(argv):
    if argv[:3] == ["simctl", "list", "devices"]:
        print(SIMCTL_DEVICES_JSON)
        return 0
    if argv[:2] == ["xctrace", "record"]:
        record(argv)
        return 0
    if argv[:2] == ["xctrace", "export"]:
        xpath = argv[argv.index("--xpath") + 1]
        if "time-profile" in xpath:
            print(TIME_PROFILE_XML)
        elif "allocations" in xpath:
            print(ALLOCATIONS_XML)
        else:
            print("unknown schema", file=sys.stderr)
            return 1
        return 0
    if argv[:1] == ["leaks"]:
        print(LEAKS_REPORT)
        return 1
    print("unsupported: " + " ".join(argv), file=sys.stderr)
    return 64


sys.exit(main(sys.argv[1:]))
'''


@pytest.fixture
def fake_xcrun(temp_dir):
    """Write an executable that emulates simctl, xctrace record/export and leaks."""
    script = temp_dir / "fake-xcrun"
    body = _FAKE_XCRUN_SOURCE.format(
        time_xml=TIME_PROFILE_XML,
        alloc_xml=ALLOCATIONS_XML,
        leaks=LEAKS_REPORT,
        simctl=SIMCTL_DEVICES_JSON,
    )
    script.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body))
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


# ============================================================================
# Cleanup
# ============================================================================


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically clear configuration cache after each test."""
    yield  # Run the test

    from xcprofiler.config import manager

    manager.clear_config_cache()
    manager._CONFIG_FILE_PATH = manager._DEFAULT_CONFIG_FILE_PATH
