"""
Command execution utilities.

This module provides a bounded command runner used for device listing and
trace exports, an asyncio wrapper that runs it off the event loop, and
checks for required system tools.
"""

import asyncio
import functools
import logging
import shutil
import subprocess
import tempfile
import threading
from dataclasses import dataclass
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)

_READ_CHUNK_SIZE = 64 * 1024


@dataclass
class CommandResult:
    """Outcome of a finished command."""

    returncode: int
    stdout: str
    stderr: str
    # True when stdout exceeded the output limit and the process was killed.
    truncated: bool = False
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.truncated and not self.timed_out


def run_command(
    argv: List[str],
    timeout: float = 60.0,
    max_output_bytes: Optional[int] = None,
) -> CommandResult:
    """Execute a command and capture its output with a bounded reader.

    Stdout is read in chunks; once `max_output_bytes` is reached the process
    is killed and the result is flagged as truncated, so a runaway exporter
    never has to be held in memory in full. Stderr is spooled to a temporary
    file to avoid pipe deadlocks.

    Args:
        argv: Program and arguments.
        timeout: Seconds before the process is killed.
        max_output_bytes: Upper bound on captured stdout, None for no limit.

    Returns:
        CommandResult. returncode is -1 when the command could not be started.
    """
    logger.debug(f"Executing command: {' '.join(argv)}")
    timed_out = threading.Event()

    try:
        with tempfile.TemporaryFile() as stderr_file:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=stderr_file,
            )

            def _on_timeout() -> None:
                timed_out.set()
                process.kill()

            timer = threading.Timer(timeout, _on_timeout)
            timer.daemon = True
            timer.start()

            chunks: List[bytes] = []
            total = 0
            truncated = False
            try:
                while True:
                    chunk = process.stdout.read(_READ_CHUNK_SIZE)
                    if not chunk:
                        break
                    if max_output_bytes is not None and total + len(chunk) > max_output_bytes:
                        chunks.append(chunk[: max_output_bytes - total])
                        total = max_output_bytes
                        truncated = True
                        process.kill()
                        break
                    chunks.append(chunk)
                    total += len(chunk)
                process.stdout.close()
                returncode = process.wait()
            finally:
                timer.cancel()

            stderr_file.seek(0)
            stderr = stderr_file.read().decode("utf-8", errors="replace")
    except FileNotFoundError as e:
        logger.error(f"Command not found: {argv[0]}: {type(e).__name__}: {e}")
        return CommandResult(-1, "", f"Error: Command not found '{argv[0]}'")
    except OSError as e:
        logger.error(f"Failed to execute '{argv[0]}': {type(e).__name__}: {e}", exc_info=True)
        return CommandResult(-1, "", f"An unexpected error occurred: {e}")

    if truncated:
        logger.warning(f"Output of '{argv[0]}' exceeded {max_output_bytes} bytes and was truncated")
    if timed_out.is_set():
        logger.warning(f"Command '{' '.join(argv[:3])}' timed out after {timeout}s")

    return CommandResult(
        returncode=returncode,
        stdout=b"".join(chunks).decode("utf-8", errors="replace"),
        stderr=stderr,
        truncated=truncated,
        timed_out=timed_out.is_set(),
    )


async def run_command_async(
    argv: List[str],
    timeout: float = 60.0,
    max_output_bytes: Optional[int] = None,
) -> CommandResult:
    """Run `run_command` in the default executor without blocking the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None,
        functools.partial(run_command, argv, timeout=timeout, max_output_bytes=max_output_bytes),
    )


def check_tool_installed(name: str) -> bool:
    """Check if a command resolves on the system PATH."""
    return shutil.which(name) is not None


def find_missing_tools(names: Iterable[str]) -> List[str]:
    """Return the subset of `names` that do not resolve on PATH, in order."""
    return [name for name in names if not check_tool_installed(name)]
