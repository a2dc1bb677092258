"""Exclusive advisory lock guarding configuration writes."""

import logging
from pathlib import Path

from filelock import FileLock, Timeout

from configforge.errors import LockTimeoutError

logger = logging.getLogger(__name__)


class WriteLock:
    """File-based mutex with bounded retry.

    Acquisition makes up to `attempts` tries, each waiting `interval`
    seconds. Once attempts are exhausted a LockTimeoutError is raised; the
    caller must not proceed with its write.
    """

    def __init__(self, lock_path: Path | str, attempts: int = 60, interval: float = 1.0):
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.lock_path = Path(lock_path)
        self.attempts = attempts
        self.interval = interval
        self._lock = FileLock(str(self.lock_path))

    @property
    def is_locked(self) -> bool:
        return self._lock.is_locked

    def acquire(self) -> None:
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        for attempt in range(1, self.attempts + 1):
            try:
                self._lock.acquire(timeout=self.interval)
                return
            except Timeout:
                logger.debug(
                    "Config lock %s busy (attempt %d/%d)",
                    self.lock_path,
                    attempt,
                    self.attempts,
                )

        logger.error(
            "Gave up acquiring config lock %s after %d attempts",
            self.lock_path,
            self.attempts,
        )
        raise LockTimeoutError(
            message=f"Timed out waiting for the config lock after {self.attempts} attempts.",
            response_id="CONFIG_LOCK_TIMEOUT",
            data={"lock_path": str(self.lock_path), "attempts": self.attempts},
        )

    def release(self) -> None:
        self._lock.release()

    def __enter__(self) -> "WriteLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
