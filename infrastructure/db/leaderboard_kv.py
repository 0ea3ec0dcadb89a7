from __future__ import annotations

from typing import List, Optional, Sequence

from domain.errors import InvalidRecordError
from domain.models import LeaderboardEntry
from domain.repositories import KeyValueStore, LeaderboardSource

LEADERBOARD_KEY = "leaderboard"


class KeyValueLeaderboard(LeaderboardSource):
    """
    Serves a leaderboard computed elsewhere and published into the store.

    Ranking is not computed here; entries are only re-ordered by the rank
    they were published with.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @staticmethod
    def _to_domain(record) -> LeaderboardEntry:
        try:
            return LeaderboardEntry(
                rank=int(record["rank"]),
                username=str(record["username"]),
                winnings=int(record["winnings"]),
                games_won=int(record["games_won"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidRecordError(LEADERBOARD_KEY, f"bad entry {record!r}") from exc

    def publish(self, entries: Sequence[LeaderboardEntry]) -> None:
        self._store.set(
            LEADERBOARD_KEY,
            [
                {
                    "rank": entry.rank,
                    "username": entry.username,
                    "winnings": entry.winnings,
                    "games_won": entry.games_won,
                }
                for entry in entries
            ],
        )

    def get_leaderboard(self, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        records = self._store.get(LEADERBOARD_KEY)
        if records is None:
            return []
        if not isinstance(records, list):
            raise InvalidRecordError(LEADERBOARD_KEY, "leaderboard must be a list")

        entries = sorted((self._to_domain(record) for record in records), key=lambda e: e.rank)
        if limit is not None:
            entries = entries[:limit]
        return entries
