"""
Per-target locking.

Two sdk-manage processes working on the same target name would race on
directory creation and teardown. Mutating target operations therefore
hold a file lock named after the target for their whole duration.

Usage:
    from sdkmanage.core.locking import TargetLockManager

    locks = TargetLockManager(Path("/run/lock/sdk-manage"))
    with locks.target_lock("alpha"):
        # install, synchronize, import or remove "alpha"
        pass
"""

import logging
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout

from sdkmanage.core.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)


class TargetLockManager:
    """
    Manages file locks for targets.

    Attributes:
        lock_dir: Directory where lock files are stored
        timeout: Default wait time in seconds
    """

    def __init__(self, lock_dir: Path, timeout: int = 600):
        """
        Initialize lock manager.

        Args:
            lock_dir: Directory for lock files (created on first use)
            timeout: Maximum wait time in seconds
        """
        self.lock_dir = Path(lock_dir)
        self.timeout = timeout

    def lock_path(self, name: str) -> Path:
        """Path of the lock file for a (validated) target name."""
        return self.lock_dir / f"target-{name}.lock"

    @contextmanager
    def target_lock(self, name: str):
        """
        Hold the lock of target ``name``.

        Args:
            name: Validated target name

        Raises:
            LockTimeoutError: If lock can't be acquired within timeout
        """
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.lock_path(name)
        lock = FileLock(lock_path, timeout=self.timeout)

        try:
            lock.acquire()
        except Timeout as e:
            raise LockTimeoutError(
                f"Could not lock target '{name}' after {self.timeout}s. "
                "Another sdk-manage process is working on it."
            ) from e

        logger.debug(f"Acquired target lock: {lock_path}")
        try:
            yield
        finally:
            lock.release()
            logger.debug(f"Released target lock: {lock_path}")
