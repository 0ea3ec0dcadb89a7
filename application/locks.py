from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class UserLocks:
    """
    One mutual-exclusion scope per user ID.

    Every read-modify-write of a user's account, transaction log and
    statistics runs while holding that user's lock. Operations touching
    several users acquire them in sorted ID order so two transfers in
    opposite directions cannot deadlock.

    A lock exists only while some caller holds or waits for it, so IDs that
    were touched once do not stay in memory.

    Locks are process-local: a store must have a single writer process.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, _Entry] = {}

    def tracked(self) -> int:
        """Number of user IDs that currently have a lock."""

        with self._guard:
            return len(self._locks)

    def _checkout(self, user_id: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = _Entry()
                self._locks[user_id] = entry
            entry.users += 1
            return entry.lock

    def _checkin(self, user_id: str) -> None:
        with self._guard:
            entry = self._locks[user_id]
            entry.users -= 1
            if entry.users == 0:
                del self._locks[user_id]

    @contextmanager
    def hold(self, *user_ids: str) -> Iterator[None]:
        checked_out: List[str] = []
        acquired: List[threading.Lock] = []
        try:
            for user_id in sorted(set(user_ids)):
                lock = self._checkout(user_id)
                checked_out.append(user_id)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()
            for user_id in checked_out:
                self._checkin(user_id)
