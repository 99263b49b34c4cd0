"""Per-key locks that serialize work on one account or one shipment.

Balance checks and the debits that follow them, as well as status
transitions, must not interleave for the same key. Keys are always acquired
in sorted order so two operations that share keys cannot deadlock.
"""

import threading
from contextlib import contextmanager

import structlog

from logistics.shared.errors import ConcurrencyConflictError
from logistics.utils import config

logger = structlog.get_logger(__name__)


class KeyedLocks:
    """Lock registry keyed by string. A key's lock lives only while someone holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: str, timeout: float | None = None):
        """Acquire every key or none, raising ``ConcurrencyConflictError`` on timeout."""
        timeout = config.lock_timeout_seconds() if timeout is None else timeout
        acquired: list[tuple[str, threading.Lock]] = []
        try:
            for key in sorted(set(keys)):
                lock = self._checkout(key)
                if not lock.acquire(timeout=timeout):
                    self._checkin(key)
                    logger.warning("Lock acquisition timed out", key=key, timeout=timeout)
                    raise ConcurrencyConflictError(
                        f"Another operation is in progress on {key}",
                        key=key,
                    )
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)


_locks = KeyedLocks()


def account_key(account_id) -> str:
    return f"account:{account_id}"


def shipment_key(tracking_number) -> str:
    return f"shipment:{tracking_number}"


def pickup_key(request_id) -> str:
    return f"pickup:{request_id}"


def serialized(*keys: str, timeout: float | None = None):
    return _locks.hold(*keys, timeout=timeout)
