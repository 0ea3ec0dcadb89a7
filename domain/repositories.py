from __future__ import annotations

from typing import Any, List, Mapping, Optional, Protocol

from .models import GamingStatistics, LeaderboardEntry, WalletUnit


class KeyValueStore(Protocol):
    """
    Durable mapping from string keys to JSON-compatible values.

    Only exact-key access is assumed. There is no compare-and-swap, so
    callers serialise their own read-modify-write sequences.
    """

    def get(self, key: str) -> Optional[Any]:
        """Return the value stored under `key`, or None if absent."""

        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def set_many(self, items: Mapping[str, Any]) -> None:
        """
        Persist several keys together.

        Backends with native transactions apply all items in one of them;
        items are written in mapping order otherwise.
        """

        ...


class WalletRepository(Protocol):
    """
    Persistence of the per-user aggregate (account, transaction log and
    gaming statistics).

    Implementations are responsible for:
    - Mapping between stored records and the domain models.
    - Writing every record of the given units in one commit.
    """

    def load(self, user_id: str) -> Optional[WalletUnit]:
        """Return the user's aggregate, or None if no account exists."""

        ...

    def load_statistics(self, user_id: str) -> Optional[GamingStatistics]:
        ...

    def save(self, *units: WalletUnit) -> None:
        ...


class IdentityRepository(Protocol):
    """
    Maps external identities (Telegram/Discord) to internal user IDs.

    The core works exclusively with internal user IDs and trusts them as
    given; provider-specific identifiers stay behind this abstraction.
    """

    def find_user_id(self, provider: str, provider_user_id: str) -> Optional[str]:
        """Return the user ID mapped to the given external identity, if any."""

        ...

    def set_external_identity(
        self,
        provider: str,
        provider_user_id: str,
        user_id: str,
    ) -> None:
        ...

    def clear_external_identity(self, provider: str, provider_user_id: str) -> None:
        """Remove any mapping for the given external identity."""

        ...

    def get_external_ids_for_user(self, provider: str, user_id: str) -> List[str]:
        """
        Return all external IDs (e.g. Telegram chat IDs) associated with
        a given internal user ID for the specified provider.
        """

        ...


class RecipientResolver(Protocol):
    def resolve(self, recipient_ref: str) -> Optional[str]:
        """Return the user ID a username or wallet address points to."""

        ...


class RecipientDirectory(RecipientResolver, Protocol):
    """Registry behind `RecipientResolver` that new players are added to."""

    def register(self, handle: str, user_id: str) -> None:
        ...

    def address_for(self, user_id: str) -> str:
        """Return the cosmetic wallet address shown for the user."""

        ...


class LeaderboardSource(Protocol):
    def get_leaderboard(self, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        """Return the precomputed leaderboard ordered by rank."""

        ...
