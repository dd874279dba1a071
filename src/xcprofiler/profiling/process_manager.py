"""
Process supervision for recording sessions.

Spawns the recorder detached from the caller, signals it to finalize, and
waits for its trace bundle to appear and stop growing. The supervisor never
owns a recorder: it keeps a psutil lookup handle for signaling and leaves
the process to the OS process table.
"""

import asyncio
import logging
import os
import signal
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple

import psutil

from ..validation import FinalizeTimeoutError, ToolUnavailableError

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


class TimeoutConstants:
    """
    Timeouts for process operations that are not user-configurable.
    """
    # Reaping an exited recorder after finalization
    REAP_TIMEOUT = 0.5
    # Waiting for recorders to exit during shutdown
    SHUTDOWN_WAIT_TIMEOUT = 5.0


def bundle_size_bytes(path: Path) -> Optional[int]:
    """
    Total size of a trace bundle.

    Trace bundles are directories; plain files are also accepted. Files that
    vanish while walking are ignored.

    Returns:
        Size in bytes, or None if the path does not exist
    """
    path = Path(path)
    try:
        if path.is_file():
            return path.stat().st_size
        if not path.is_dir():
            return None
    except OSError:
        return None

    total = 0
    for dirpath, _, filenames in os.walk(path):
        for filename in filenames:
            try:
                total += os.lstat(os.path.join(dirpath, filename)).st_size
            except OSError:
                continue
    return total


class ProcessSupervisor:
    """
    Recorder process lifecycle: spawn, graceful stop and finalize wait.

    Args:
        poll_interval: Seconds between trace bundle size checks
        finalize_timeout: Upper bound for the whole finalize wait
    """

    def __init__(self, poll_interval: float = 0.5, finalize_timeout: float = 30.0):
        self.poll_interval = poll_interval
        self.finalize_timeout = finalize_timeout

    def spawn_recorder(self, argv: List[str]) -> Tuple[int, Optional[psutil.Process]]:
        """
        Start the recording process in its own session.

        Returns:
            (pid, non-owning process handle or None if it already vanished)

        Raises:
            ToolUnavailableError: If the recorder cannot be executed
        """
        logger.info(f"Starting recorder: {' '.join(argv)}")
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise ToolUnavailableError(
                f"Failed to start recorder '{argv[0]}': {e}",
                details={"command": " ".join(argv)},
            ) from e

        logger.info(f"Recorder started with PID: {process.pid}")
        try:
            handle = psutil.Process(process.pid)
        except psutil.NoSuchProcess:
            logger.warning(f"Recorder PID {process.pid} exited immediately")
            handle = None
        return process.pid, handle

    def send_interrupt(self, pid: int, handle: Optional[psutil.Process] = None) -> bool:
        """
        Send SIGINT so the recorder finalizes its bundle and exits.

        Returns:
            True if the signal was delivered, False if the process was gone
        """
        if pid <= 0:
            logger.warning(f"Invalid recorder PID {pid}, skipping interrupt")
            return False

        try:
            process = handle if handle is not None else psutil.Process(pid)
            if not self._is_process_alive(process):
                logger.info(f"Recorder PID {pid} already exited")
                return False
            process.send_signal(signal.SIGINT)
            logger.debug(f"Sent SIGINT to recorder PID {pid}")
            return True
        except psutil.NoSuchProcess:
            logger.info(f"Recorder PID {pid} already exited")
            return False
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending SIGINT to recorder PID {pid}")
            return False

    async def wait_for_finalization(self, trace_path: Path) -> int:
        """
        Poll the trace bundle until it exists and its size is unchanged
        between two consecutive polls.

        Returns:
            Final bundle size in bytes

        Raises:
            FinalizeTimeoutError: If the bundle is not stable in time
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.finalize_timeout
        previous_size: Optional[int] = None

        while True:
            size = await loop.run_in_executor(None, bundle_size_bytes, trace_path)
            if size is not None and size > 0 and size == previous_size:
                logger.info(f"Trace bundle finalized: {trace_path} ({size} bytes)")
                return size
            previous_size = size

            if loop.time() + self.poll_interval > deadline:
                break
            await asyncio.sleep(self.poll_interval)

        exists = previous_size is not None
        raise FinalizeTimeoutError(
            f"Trace file was not finalized within {self.finalize_timeout:g}s: {trace_path}",
            details={"trace_path": str(trace_path), "exists": exists},
        )

    def reap(self, handle: Optional[psutil.Process]) -> None:
        """Collect the recorder's exit status if it has already exited."""
        if handle is None:
            return
        try:
            handle.wait(timeout=TimeoutConstants.REAP_TIMEOUT)
        except psutil.TimeoutExpired:
            logger.debug(f"Recorder PID {handle.pid} still running after finalization")
        except (psutil.NoSuchProcess, ChildProcessError):
            pass

    def _is_process_alive(self, process: psutil.Process) -> bool:
        """Safely check if a process is still alive and not a zombie."""
        try:
            if not process.is_running():
                return False
            status = process.status()
            return status not in [psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD]
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return False

    def is_alive(self, pid: int, handle: Optional[psutil.Process] = None) -> bool:
        try:
            return self._is_process_alive(handle if handle is not None else psutil.Process(pid))
        except psutil.NoSuchProcess:
            return False

    async def interrupt_all(self, targets: List[Tuple[int, Optional[psutil.Process]]]) -> None:
        """Best-effort SIGINT to several recorders, then wait briefly for them to exit."""
        signaled = []
        for pid, handle in targets:
            if self.send_interrupt(pid, handle):
                try:
                    signaled.append(handle if handle is not None else psutil.Process(pid))
                except psutil.NoSuchProcess:
                    continue
        if not signaled:
            return

        loop = asyncio.get_running_loop()
        _, alive = await loop.run_in_executor(
            None,
            lambda: psutil.wait_procs(signaled, timeout=TimeoutConstants.SHUTDOWN_WAIT_TIMEOUT),
        )
        for process in alive:
            logger.warning(f"Recorder PID {process.pid} did not exit after SIGINT")
