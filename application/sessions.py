from __future__ import annotations

import threading
from collections import Counter
from typing import Tuple


class ActiveGames:
    """
    Games each player has paid an entry fee for and not reported yet.

    Every successful join adds one seat; reporting a result takes one seat
    back. Seats live in process memory only, like the user locks.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seats: Counter[Tuple[str, str]] = Counter()

    def add(self, user_id: str, game_id: str) -> None:
        with self._lock:
            self._seats[(user_id, game_id)] += 1

    def take(self, user_id: str, game_id: str) -> bool:
        """Claim one seat, returning False when the player has none."""

        key = (user_id, game_id)
        with self._lock:
            if self._seats.get(key, 0) <= 0:
                return False
            self._seats[key] -= 1
            if self._seats[key] == 0:
                del self._seats[key]
            return True

    def count(self, user_id: str, game_id: str) -> int:
        with self._lock:
            return self._seats.get((user_id, game_id), 0)
