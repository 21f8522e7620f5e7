"""Cross-process lock guarding token refresh.

Every CLI invocation is a separate process, so an in-memory lock can't
serialize refreshes. The lock is a file created with O_CREAT | O_EXCL;
a file older than the stale threshold is assumed to belong to a crashed
holder and is removed.
"""
import errno
import logging
import os
import sys
import tempfile
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar

from utils.config import Config

logger = logging.getLogger(__name__)

T = TypeVar('T')


class LockNotAcquiredError(Exception):
    """Raised when the refresh lock could not be acquired in time. Retry later."""
    pass


@dataclass
class LockHandle:
    """Ownership of the lock file for the duration of a critical section"""
    fd: int
    path: Path
    released: bool = False


def default_lock_path() -> Path:
    """Platform-specific lock file location"""
    if sys.platform == 'darwin':
        base = Path.home() / "Library" / "Caches" / "granola"
    else:
        base = Path(tempfile.gettempdir())
    return base / Config.LOCK_FILE_NAME


class ProcessLock:
    """Mutual exclusion across independent processes via an exclusively-created file"""

    def __init__(
        self,
        path: Optional[Path] = None,
        poll_interval: float = Config.LOCK_POLL_INTERVAL,
        stale_after: float = Config.LOCK_STALE_AFTER,
        default_timeout: float = Config.LOCK_TIMEOUT,
    ):
        self.path = Path(path) if path else default_lock_path()
        self.poll_interval = poll_interval
        self.stale_after = stale_after
        self.default_timeout = default_timeout

    def _is_stale(self) -> bool:
        try:
            age = time.time() - os.stat(self.path).st_mtime
        except FileNotFoundError:
            # Holder released between our create attempt and the stat
            return True
        return age > self.stale_after

    def acquire(self, timeout: Optional[float] = None) -> Optional[LockHandle]:
        """
        Wait for exclusive ownership of the lock file

        Args:
            timeout: Seconds to keep trying (defaults to the lock's default_timeout)

        Returns:
            LockHandle on success, None if the timeout elapsed

        Raises:
            OSError: For filesystem errors other than the file already existing
        """
        timeout = self.default_timeout if timeout is None else timeout
        self.path.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + timeout
        logger.debug(f"Attempting to acquire lock at {self.path}")

        while time.monotonic() < deadline:
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
            except OSError as e:
                if e.errno != errno.EEXIST:
                    logger.debug(f"Lock acquisition failed: {e}")
                    raise

                if self._is_stale():
                    logger.debug("Removing stale lock")
                    try:
                        os.unlink(self.path)
                    except FileNotFoundError:
                        pass  # another process got there first
                    continue

                logger.debug("Lock held by another process, waiting...")
                time.sleep(self.poll_interval)
                continue

            try:
                os.write(fd, str(os.getpid()).encode('ascii'))
            except OSError:
                os.close(fd)
                os.unlink(self.path)
                raise
            logger.debug("Lock acquired")
            return LockHandle(fd=fd, path=self.path)

        logger.debug("Lock acquisition timed out")
        return None

    def release(self, handle: LockHandle) -> None:
        """Close the handle and remove the lock file; errors are ignored."""
        if handle.released:
            return
        handle.released = True
        logger.debug("Releasing lock")
        try:
            os.close(handle.fd)
            os.unlink(handle.path)
            logger.debug("Lock released")
        except OSError as e:
            logger.debug(f"Error releasing lock: {e}")

    @contextmanager
    def hold(self, timeout: Optional[float] = None) -> Iterator[LockHandle]:
        """
        Hold the lock for the body of a ``with`` block

        Raises:
            LockNotAcquiredError: If the lock could not be acquired in time
        """
        handle = self.acquire(timeout)
        if handle is None:
            raise LockNotAcquiredError("Failed to acquire token refresh lock")
        try:
            yield handle
        finally:
            self.release(handle)

    def with_lock(self, operation: Callable[[], T], timeout: Optional[float] = None) -> T:
        """Run ``operation`` while holding the lock and return its result."""
        with self.hold(timeout):
            return operation()
