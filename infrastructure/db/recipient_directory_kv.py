from __future__ import annotations

import hashlib
from typing import Optional

from domain.repositories import KeyValueStore, RecipientDirectory


def normalize_handle(recipient_ref: str) -> str:
    return recipient_ref.strip().lstrip("@").lower()


class KeyValueRecipientDirectory(RecipientDirectory):
    """
    Resolves usernames and wallet addresses to internal user IDs.

    Handles are matched case-insensitively and a leading `@` is ignored,
    so `@Alice`, `alice` and `ALICE` all reach the same player. Wallet
    addresses are cosmetic: they are derived from the user ID and carry
    no chain semantics.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    @staticmethod
    def address_for(user_id: str) -> str:
        return "0x" + hashlib.sha256(user_id.encode("utf-8")).hexdigest()[:40]

    def register(self, handle: str, user_id: str) -> None:
        """Make `handle` and the user's wallet address resolve to `user_id`."""

        items = {f"recipient:{normalize_handle(self.address_for(user_id))}": user_id}
        normalized = normalize_handle(handle)
        if normalized:
            items[f"recipient:{normalized}"] = user_id
        self._store.set_many(items)

    def resolve(self, recipient_ref: str) -> Optional[str]:
        normalized = normalize_handle(recipient_ref or "")
        if not normalized:
            return None
        user_id = self._store.get(f"recipient:{normalized}")
        return str(user_id) if user_id is not None else None
