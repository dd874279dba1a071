"""
Profiling session orchestration.

The Profiler exposes the three operations an agent drives across separate
tool calls: start a recording, stop it once the app has been exercised, and
analyze the finalized trace bundle.

    start   = preflight -> sweep -> build command -> spawn -> register
    stop    = lookup -> SIGINT -> finalize wait -> mark stopped
    analyze = lookup -> export -> parse -> aggregate -> mark completed, remove

Operations on different sessions may overlap freely; each session owns its
own recorder process and trace directory.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ..analysis.aggregator import TraceAggregator
from ..analysis.exporters import TraceExporter
from ..config import get_config
from ..models.config import ProfilerConfig
from ..models.results import AnalysisResult
from ..models.session import Session, SessionStatus, StartResult, StopResult
from ..validation import (
    FinalizeTimeoutError,
    SessionNotFoundError,
    SessionStateError,
    ToolUnavailableError,
    TraceNotFoundError,
    ValidationError,
    validate_env_vars,
    validate_non_empty_string,
    validate_string_list,
    validate_templates,
)
from .command_builder import build_record_command
from .preflight import validate_profiling_setup
from .process_manager import BYTES_PER_MB, ProcessSupervisor, bundle_size_bytes
from .retention import cleanup_old_traces, ensure_trace_directory, remove_trace_directory
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class Profiler:
    """
    Start, stop and analyze Instruments profiling sessions.

    Args:
        config: Profiler configuration, defaults to get_config()
        store: Session registry, one per server process
        supervisor: Recorder process supervisor
        aggregator: Trace analysis pipeline
    """

    def __init__(
        self,
        config: Optional[ProfilerConfig] = None,
        store: Optional[SessionStore] = None,
        supervisor: Optional[ProcessSupervisor] = None,
        aggregator: Optional[TraceAggregator] = None,
    ):
        self.config = config or get_config()
        self.store = store or SessionStore(self.config.traces_root, self.config.trace_filename)
        self.supervisor = supervisor or ProcessSupervisor(
            poll_interval=self.config.finalize_poll_interval,
            finalize_timeout=self.config.finalize_timeout,
        )
        self.aggregator = aggregator or TraceAggregator(TraceExporter(
            xcrun_path=self.config.xcrun_path,
            timeout=self.config.export_timeout,
            max_output_bytes=self.config.max_export_bytes,
        ))

    async def start(
        self,
        device_udid: str,
        bundle_id: str,
        templates: Optional[Sequence[str]] = None,
        launch_args: Optional[Sequence[str]] = None,
        env_vars: Optional[Mapping[str, str]] = None,
    ) -> StartResult:
        """
        Start recording `bundle_id` on simulator `device_udid`.

        Raises:
            ValidationError: If arguments are invalid
            ToolUnavailableError: If xctrace is missing or cannot be started
            DeviceNotReadyError: If the simulator is unknown or not booted
            StorageError: If the session directory cannot be created
        """
        device_udid = validate_non_empty_string(device_udid, field_name="device_udid")
        bundle_id = validate_non_empty_string(bundle_id, field_name="bundle_id")
        if templates is None:
            templates = list(self.config.default_templates)
        else:
            templates = validate_templates(templates)
        launch_args = validate_string_list(launch_args, "launch_args") if launch_args else []
        env_vars = validate_env_vars(env_vars) if env_vars else {}

        await validate_profiling_setup(
            device_udid,
            required_tools=self.config.required_tools,
            xcrun_path=self.config.xcrun_path,
            device_list_timeout=self.config.device_list_timeout,
        )

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None, cleanup_old_traces,
            self.config.traces_root, self.config.retention_max_age_seconds,
        )

        session_id = self.store.create_session_id()
        trace_path = self.store.get_trace_path(session_id)
        ensure_trace_directory(self.config.traces_root, session_id)

        argv = build_record_command(
            device_udid=device_udid,
            bundle_id=bundle_id,
            templates=templates,
            output_path=trace_path,
            launch_args=launch_args,
            env_vars=env_vars,
            xcrun_path=self.config.xcrun_path,
        )
        try:
            pid, handle = self.supervisor.spawn_recorder(argv)
        except ToolUnavailableError:
            remove_trace_directory(self.config.traces_root, session_id)
            raise

        self.store.register_session(Session(
            session_id=session_id,
            device_udid=device_udid,
            bundle_id=bundle_id,
            templates=list(templates),
            trace_path=trace_path,
            pid=pid,
            status=SessionStatus.RECORDING,
            start_time=time.time(),
            process_handle=handle,
        ))
        logger.info(f"Profiling session {session_id} recording {bundle_id} on {device_udid} (PID {pid})")
        return StartResult(session_id=session_id, trace_path=trace_path, pid=pid)

    def _prior_stop_result(self, session: Session) -> StopResult:
        size = bundle_size_bytes(session.trace_path)
        if size is None:
            raise SessionNotFoundError(
                session.session_id,
                message=f"Session {session.session_id} was already stopped and its trace no longer exists",
            )
        file_size_mb = session.file_size_mb if session.file_size_mb is not None else size / BYTES_PER_MB
        return StopResult(
            session_id=session.session_id,
            trace_path=session.trace_path,
            duration_seconds=session.duration_seconds,
            file_size_mb=file_size_mb,
        )

    async def stop(self, session_id: str) -> StopResult:
        """
        Stop a recording and wait for its trace bundle to be finalized.

        Raises:
            SessionNotFoundError: If the session is unknown
            FinalizeTimeoutError: If the bundle does not stabilize in time;
                the session is then marked failed and can be retried
        """
        session = self.store.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        if session.status in (SessionStatus.STOPPED, SessionStatus.COMPLETED):
            logger.info(f"Session {session_id} already stopped, reporting prior result")
            return self._prior_stop_result(session)

        if session.status == SessionStatus.RECORDING:
            end_time = time.time()
            self.supervisor.send_interrupt(session.pid, session.process_handle)
        else:
            # Retrying after a finalize timeout; re-signal only a recorder that is still running.
            end_time = session.end_time or time.time()
            logger.info(f"Retrying finalize wait for failed session {session_id}")
            if self.supervisor.is_alive(session.pid):
                self.supervisor.send_interrupt(session.pid)

        try:
            size = await self.supervisor.wait_for_finalization(session.trace_path)
        except FinalizeTimeoutError:
            if self.store.has_session(session_id):
                self.store.update_session(
                    session_id,
                    status=SessionStatus.FAILED,
                    end_time=end_time,
                    process_handle=None,
                )
            logger.error(f"Session {session_id} trace was not finalized in time")
            raise

        file_size_mb = size / BYTES_PER_MB
        updated = self.store.update_session(
            session_id,
            status=SessionStatus.STOPPED,
            end_time=end_time,
            file_size_mb=file_size_mb,
            process_handle=None,
        )

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.supervisor.reap, session.process_handle)

        logger.info(
            f"Session {session_id} stopped after {updated.duration_seconds:.1f}s "
            f"({file_size_mb:.2f} MB)"
        )
        return StopResult(
            session_id=session_id,
            trace_path=updated.trace_path,
            duration_seconds=updated.duration_seconds,
            file_size_mb=file_size_mb,
        )

    async def analyze(
        self,
        session_id: Optional[str] = None,
        trace_path: Optional[str] = None,
        templates: Optional[Sequence[str]] = None,
    ) -> AnalysisResult:
        """
        Analyze a stopped session's trace, or an existing trace bundle.

        A session is single-use: after a successful analysis it is marked
        completed and removed from the store.

        Raises:
            ValidationError: If neither session_id nor trace_path is given
            SessionNotFoundError: If session_id is unknown
            SessionStateError: If the session is still recording
            TraceNotFoundError: If the trace bundle does not exist
        """
        if not session_id and not trace_path:
            raise ValidationError("Either session_id or trace_path must be provided")

        session: Optional[Session] = None
        duration_seconds = 0.0
        if session_id:
            session = self.store.get_session(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            if session.status == SessionStatus.RECORDING:
                raise SessionStateError(
                    f"Session {session_id} is still recording",
                    details={"session_id": session_id, "status": session.status.value},
                )
            path = session.trace_path
            duration_seconds = session.duration_seconds
            default_templates = session.templates
        else:
            path = Path(validate_non_empty_string(trace_path, field_name="trace_path"))
            default_templates = self.config.default_templates

        selected = validate_templates(templates) if templates is not None else list(default_templates)

        loop = asyncio.get_running_loop()
        size = await loop.run_in_executor(None, bundle_size_bytes, path)
        if size is None:
            raise TraceNotFoundError(
                f"Trace file not found: {path}",
                details={"trace_path": str(path)},
            )

        result = await self.aggregator.analyze(
            path,
            templates=selected,
            duration_seconds=duration_seconds,
            trace_file_size_mb=size / BYTES_PER_MB,
        )

        if session is not None and self.store.has_session(session.session_id):
            self.store.update_session(session.session_id, status=SessionStatus.COMPLETED)
            self.store.remove_session(session.session_id)
            logger.info(f"Session {session.session_id} analyzed and removed")
        return result

    async def shutdown(self) -> None:
        """Best-effort stop of every recording session, then forget all sessions."""
        recording = [
            (s.pid, s.process_handle)
            for s in self.store.get_all_sessions()
            if s.status == SessionStatus.RECORDING
        ]
        if recording:
            logger.info(f"Interrupting {len(recording)} recording session(s) on shutdown")
            await self.supervisor.interrupt_all(recording)
        self.store.clear_all_sessions()
