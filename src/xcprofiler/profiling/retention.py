"""
Trace storage housekeeping.

Stale session directories are swept lazily before each new session, and the
per-session directory is created here. Sweeping is best-effort and works per
entry, so it can run while other sessions create their directories.
"""

import errno
import logging
import shutil
import stat
import time
from pathlib import Path
from typing import List, Optional

from ..validation import StorageError

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_SECONDS = 24 * 60 * 60


def cleanup_old_traces(
    traces_root: Path,
    max_age_seconds: float = DEFAULT_MAX_AGE_SECONDS,
    now: Optional[float] = None,
) -> List[Path]:
    """
    Delete session directories whose mtime is older than `max_age_seconds`.

    Non-directory entries are left alone. Entries that cannot be stat'd or
    deleted are skipped. A missing root is a no-op.

    Args:
        traces_root: Trace storage root
        max_age_seconds: TTL for a session directory
        now: Reference epoch time, defaults to time.time()

    Returns:
        Paths that were removed
    """
    reference = time.time() if now is None else now
    removed: List[Path] = []

    try:
        entries = list(Path(traces_root).iterdir())
    except FileNotFoundError:
        return removed
    except OSError as e:
        logger.warning(f"Cannot list trace storage {traces_root}, skipping cleanup: {e}")
        return removed

    for entry in entries:
        try:
            st = entry.stat()
            if not stat.S_ISDIR(st.st_mode):
                continue
            if reference - st.st_mtime <= max_age_seconds:
                continue
            shutil.rmtree(entry)
            removed.append(entry)
            logger.info(f"Removed stale trace directory: {entry}")
        except OSError as e:
            logger.debug(f"Skipping trace entry {entry}: {e}")
            continue

    return removed


def ensure_trace_directory(traces_root: Path, session_id: str) -> Path:
    """
    Create the directory for a session.

    Raises:
        StorageError: If the directory cannot be created
    """
    dir_path = Path(traces_root) / session_id
    try:
        dir_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        if isinstance(e, PermissionError) or e.errno == errno.EROFS:
            raise StorageError(
                f"Cannot create {traces_root}/, check permissions",
                details={"path": str(dir_path)},
            ) from e
        raise StorageError(
            f"Failed to create trace directory {dir_path}: {e}",
            details={"path": str(dir_path)},
        ) from e
    return dir_path


def remove_trace_directory(traces_root: Path, session_id: str) -> None:
    """Best-effort removal of a session directory."""
    shutil.rmtree(Path(traces_root) / session_id, ignore_errors=True)
