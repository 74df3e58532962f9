"""Advisory lock preventing two runs against the same local root."""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .exceptions import DotsyncLockError


@contextmanager
def acquire_lock(lock_path: Path) -> Iterator[Path]:
    """
    Hold ``lock_path`` for the duration of the block.

    The file is created exclusively and records the owning PID. A stale lock
    left by a killed run must be removed by hand.
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = os.open(str(lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
    except FileExistsError:
        owner = read_lock_owner(lock_path)
        raise DotsyncLockError(
            f"{lock_path} is held by another dotsync run (pid {owner}). "
            "Remove it if no other run is active."
        )
    except OSError as e:
        raise DotsyncLockError(f"Cannot create lock {lock_path}: {e}")

    with os.fdopen(fd, "w") as f:
        f.write(str(os.getpid()))

    try:
        yield lock_path
    finally:
        try:
            lock_path.unlink()
        except FileNotFoundError:
            pass


def read_lock_owner(lock_path: Path) -> str:
    try:
        return lock_path.read_text().strip() or "unknown"
    except OSError:
        return "unknown"
