"""Atomic file replacement and advisory cross-process locking."""

from __future__ import annotations

import logging
import os
import sys
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)


def atomic_write_bytes(path: str | Path, data: bytes) -> None:
    """Write ``data`` to ``path`` so readers see either the old file or the new one.

    The bytes go to a temporary file in the same directory, which is flushed,
    fsynced and then renamed over the target. On failure the temporary file is
    removed and the original exception propagates.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


@contextmanager
def file_lock(lock_path: str | Path, timeout_ms: int = 5000) -> Iterator[None]:
    """Hold an exclusive advisory lock on ``lock_path`` for the ``with`` block.

    The lock file is created if missing and left in place afterwards. On POSIX
    the call blocks until the lock is free; on Windows it polls until
    ``timeout_ms`` elapses and then raises ``TimeoutError``.
    """
    lock_path = Path(lock_path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with open(lock_path, "a+b") as handle:
        if sys.platform == "win32":
            start = time.time()
            while True:
                try:
                    handle.seek(0)
                    msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)
                    break
                except OSError:
                    if (time.time() - start) * 1000 > timeout_ms:
                        raise TimeoutError(f"Could not acquire lock on {lock_path}") from None
                    time.sleep(0.01)
            try:
                yield
            finally:
                handle.seek(0)
                msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)
        else:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            logger.debug("Acquired lock %s", lock_path)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
                logger.debug("Released lock %s", lock_path)
