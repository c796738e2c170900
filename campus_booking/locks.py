import threading
from contextlib import contextmanager
from datetime import date
from typing import Dict, Iterator, Tuple

LockKey = Tuple[int, date]


class BookingLocks:
    """
    Process-wide locks keyed by ``(facility_id, date)``.

    A booking write holds the lock for its facility/day across the conflict
    check and the commit, so two requests for the same day cannot both see
    "no conflict" and both insert.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[LockKey, threading.Lock] = {}

    def _lock_for(self, key: LockKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *keys: LockKey) -> Iterator[None]:
        # fixed acquisition order avoids deadlock when a booking moves days
        ordered = sorted(set(keys))
        acquired = []
        try:
            for key in ordered:
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


booking_locks = BookingLocks()
