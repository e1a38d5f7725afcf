"""
Named locks for record store read-modify-write cycles.

Keys: lock:collection:{name}. Uses lock files created with O_EXCL so the
lock holds across threads and across uvicorn worker processes sharing a
data directory. The holder's pid is written into the file; a lock whose
holder is gone, or which is older than the stale age, is broken so a
crashed process cannot block writers forever.
"""

from __future__ import annotations

import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, List

from ..utils.exceptions import StorageError
from ..utils.logger import get_logger

logger = get_logger(__name__)

LOCK_TIMEOUT_SECONDS = 10.0
LOCK_POLL_INTERVAL = 0.01
STALE_LOCK_SECONDS = 60.0
# Time a new holder gets to write its pid before an empty lock counts as stale
PID_WRITE_GRACE_SECONDS = 1.0


def _lock_path(locks_dir: Path, key: str) -> Path:
    safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
    locks_dir.mkdir(parents=True, exist_ok=True)
    return locks_dir / f"{safe}.lock"


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by someone else
        return True
    except OSError:
        return True
    return True


def is_stale(path: Path, stale_after_seconds: float = STALE_LOCK_SECONDS, at_startup: bool = False) -> bool:
    """
    True if the lock's holder is dead or the lock outlived stale_after_seconds.

    At startup this process holds no locks, so a lock carrying our own pid
    (reused pid after a restart) or no pid at all is stale too.
    """
    try:
        age = time.time() - path.stat().st_mtime
        holder = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return False
    if age > stale_after_seconds:
        return True
    if holder.isdigit():
        pid = int(holder)
        if at_startup and pid == os.getpid():
            return True
        return not _pid_alive(pid)
    # Empty while the holder is between create and write
    return at_startup or age > PID_WRITE_GRACE_SECONDS


def _break_lock(path: Path, reason: str) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    logger.warning("Broke stale lock", path=str(path), reason=reason)


@contextmanager
def acquire_lock(
    locks_dir: Path,
    key: str,
    timeout_seconds: float = LOCK_TIMEOUT_SECONDS,
    stale_after_seconds: float = STALE_LOCK_SECONDS,
) -> Generator[None, None, None]:
    """
    Acquire a named lock (e.g. lock:collection:shifts).
    Blocks until acquired; raises StorageError on timeout.
    Stale locks (dead holder, or older than stale_after_seconds) are removed
    and the acquire retried.
    """
    path = _lock_path(locks_dir, key)
    deadline = time.monotonic() + timeout_seconds
    while True:
        try:
            fd = os.open(str(path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            if is_stale(path, stale_after_seconds):
                _break_lock(path, "holder gone or lock expired")
                continue
            if time.monotonic() >= deadline:
                raise StorageError(f"Could not acquire lock {key} within {timeout_seconds}s")
            time.sleep(LOCK_POLL_INTERVAL)
            continue
        try:
            os.write(fd, str(os.getpid()).encode())
        finally:
            os.close(fd)
        break

    try:
        yield
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


def clear_stale_locks(locks_dir: Path, stale_after_seconds: float = STALE_LOCK_SECONDS) -> List[Path]:
    """Remove stale lock files left behind by crashed processes. Returns what was removed."""
    if not locks_dir.is_dir():
        return []
    removed = []
    for path in sorted(locks_dir.glob("*.lock")):
        if is_stale(path, stale_after_seconds, at_startup=True):
            _break_lock(path, "found at startup")
            removed.append(path)
    return removed


def lock_key_collection(collection: str) -> str:
    return f"lock:collection:{collection}"
