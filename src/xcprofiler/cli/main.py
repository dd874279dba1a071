"""
Command-line interface for the xcprofiler application.

This module provides the CLI entry point for recording and analyzing
Instruments traces of iOS simulator apps without a tool-calling client:

    xcprofiler profile --device <udid> --bundle <id> --duration 10
    xcprofiler analyze --trace /tmp/instruments-traces/<id>/recording.trace
    xcprofiler cleanup
    xcprofiler devices
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import get_config, set_config_path
from ..models.config import ProfilerConfig
from ..profiling import Profiler, cleanup_old_traces
from ..system.devices import list_devices
from ..validation import (
    ProfilerError,
    ValidationError,
    VALID_TEMPLATES,
    handle_cli_error,
    validate_positive_float,
)

# --- Logging Setup ---
# stdout carries only the JSON result.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2))


def parse_env_pairs(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated KEY=VALUE arguments into a mapping."""
    env: Dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValidationError(
                f"--env expects KEY=VALUE, got '{pair}'",
                field_name="--env",
                value=pair,
            )
        env[key] = value
    return env


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xcprofiler",
        description="Record and analyze Instruments traces of iOS simulator apps.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help="Path to a TOML configuration file (default: conf/config.toml).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    profile = subparsers.add_parser(
        "profile", help="Record an app for a fixed duration, then analyze the trace."
    )
    profile.add_argument("-d", "--device", required=True, help="Booted simulator UDID.")
    profile.add_argument("-b", "--bundle", required=True, help="App bundle identifier.")
    profile.add_argument(
        "-t",
        "--template",
        action="append",
        choices=VALID_TEMPLATES,
        help="Template to record; repeat for several (default: from config).",
    )
    profile.add_argument(
        "--duration",
        type=float,
        default=10.0,
        help="Seconds to record before stopping (Ctrl-C stops early). Default: 10.",
    )
    profile.add_argument(
        "--launch-arg",
        action="append",
        default=[],
        help="Argument passed to the launched app; repeat for several.",
    )
    profile.add_argument(
        "--env",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Environment variable for the launched app; repeat for several.",
    )
    profile.add_argument(
        "--no-analyze",
        action="store_true",
        help="Stop after finalizing the trace and skip the analysis step.",
    )

    analyze = subparsers.add_parser("analyze", help="Analyze an existing trace bundle.")
    analyze.add_argument("trace", type=Path, help="Path to the .trace bundle.")
    analyze.add_argument(
        "-t",
        "--template",
        action="append",
        choices=VALID_TEMPLATES,
        help="Template to analyze; repeat for several (default: all).",
    )

    cleanup = subparsers.add_parser("cleanup", help="Delete trace directories past retention.")
    cleanup.add_argument(
        "--max-age-hours",
        type=float,
        help="Override the configured retention age.",
    )

    subparsers.add_parser("devices", help="List iOS simulators and their state.")
    return parser


async def _wait_for_duration(duration: float) -> None:
    """Sleep for `duration` seconds, returning early on SIGINT."""
    loop = asyncio.get_running_loop()
    interrupted = asyncio.Event()
    try:
        loop.add_signal_handler(signal.SIGINT, interrupted.set)
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers unavailable, Ctrl-C will abort the run")

    try:
        await asyncio.wait_for(interrupted.wait(), timeout=duration)
        logger.info("Interrupt received, stopping recording early")
    except asyncio.TimeoutError:
        pass
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass


async def run_profile(args: argparse.Namespace, config: ProfilerConfig) -> Dict[str, Any]:
    """Start, record for the requested duration, stop and analyze."""
    duration = validate_positive_float(args.duration, min_value=0.1, field_name="--duration")
    profiler = Profiler(config=config)
    try:
        started = await profiler.start(
            device_udid=args.device,
            bundle_id=args.bundle,
            templates=args.template,
            launch_args=args.launch_arg,
            env_vars=parse_env_pairs(args.env),
        )
        logger.info(f"Recording session {started.session_id} for {duration:g}s")
        await _wait_for_duration(duration)

        stopped = await profiler.stop(started.session_id)
        output: Dict[str, Any] = {"session": stopped.to_dict()}
        if not args.no_analyze:
            analysis = await profiler.analyze(session_id=started.session_id)
            output["analysis"] = analysis.to_dict()
        return output
    finally:
        await profiler.shutdown()


async def run_analyze(args: argparse.Namespace, config: ProfilerConfig) -> Dict[str, Any]:
    profiler = Profiler(config=config)
    result = await profiler.analyze(trace_path=str(args.trace), templates=args.template)
    return result.to_dict()


def run_cleanup(args: argparse.Namespace, config: ProfilerConfig) -> Dict[str, Any]:
    if args.max_age_hours is not None:
        max_age_hours = validate_positive_float(
            args.max_age_hours, min_value=0.0, field_name="--max-age-hours"
        )
        max_age_seconds = max_age_hours * 3600
    else:
        max_age_seconds = config.retention_max_age_seconds
    removed = cleanup_old_traces(config.traces_root, max_age_seconds)
    logger.info(f"Removed {len(removed)} expired trace director{'y' if len(removed) == 1 else 'ies'}")
    return {"traces_root": str(config.traces_root), "removed": [str(p) for p in removed]}


async def run_devices(config: ProfilerConfig) -> Dict[str, Any]:
    devices = await list_devices(xcrun_path=config.xcrun_path, timeout=config.device_list_timeout)
    return {"devices": [dict(d.to_dict(), ready=d.is_ready) for d in devices]}


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Main command-line interface for the xcprofiler application.

    Raises:
        SystemExit: On configuration errors, invalid arguments or a failed
            profiling operation.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.config:
        set_config_path(args.config)

    # Load application configuration
    try:
        config = get_config()
    except Exception as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=1,
            logger=logger,
        )

    try:
        if args.command == "profile":
            output = asyncio.run(run_profile(args, config))
        elif args.command == "analyze":
            output = asyncio.run(run_analyze(args, config))
        elif args.command == "cleanup":
            output = run_cleanup(args, config)
        elif args.command == "devices":
            output = asyncio.run(run_devices(config))
        else:
            parser.error(f"Unknown command: {args.command}")
            return
    except ProfilerError as e:
        handle_cli_error(
            error=e,
            context=f"{args.command} command",
            exit_code=1,
            logger=logger,
        )
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        sys.exit(130)

    _print_json(output)


if __name__ == "__main__":
    main_cli()
