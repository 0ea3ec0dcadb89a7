from __future__ import annotations

from typing import Dict, List, Optional

from domain.repositories import IdentityRepository, KeyValueStore


def _identity_key(provider: str, provider_user_id: str) -> str:
    return f"identity:{provider}:{provider_user_id}"


def _reverse_key(user_id: str) -> str:
    return f"identities:{user_id}"


class KeyValueIdentityRepository(IdentityRepository):
    """
    `IdentityRepository` stored in the key-value store.

    Forward mappings live under `identity:{provider}:{external_id}`; a
    reverse index under `identities:{user_id}` lists the external IDs per
    provider so notifications can reach every chat a user is linked from.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def _reverse_index(self, user_id: str) -> Dict[str, List[str]]:
        index = self._store.get(_reverse_key(user_id))
        return index if isinstance(index, dict) else {}

    def find_user_id(self, provider: str, provider_user_id: str) -> Optional[str]:
        user_id = self._store.get(_identity_key(provider, provider_user_id))
        if user_id is None:
            return None
        return str(user_id)

    def set_external_identity(
        self,
        provider: str,
        provider_user_id: str,
        user_id: str,
    ) -> None:
        """
        Upsert a mapping from external identity to internal user ID.
        """

        items = {}
        previous = self.find_user_id(provider, provider_user_id)
        if previous is not None and previous != user_id:
            old_index = self._reverse_index(previous)
            old_index[provider] = [
                external_id
                for external_id in old_index.get(provider, [])
                if external_id != provider_user_id
            ]
            items[_reverse_key(previous)] = old_index

        index = self._reverse_index(user_id)
        external_ids = index.setdefault(provider, [])
        if provider_user_id not in external_ids:
            external_ids.append(provider_user_id)
        items[_reverse_key(user_id)] = index
        items[_identity_key(provider, provider_user_id)] = user_id

        self._store.set_many(items)

    def clear_external_identity(self, provider: str, provider_user_id: str) -> None:
        user_id = self.find_user_id(provider, provider_user_id)
        if user_id is None:
            return

        index = self._reverse_index(user_id)
        index[provider] = [
            external_id
            for external_id in index.get(provider, [])
            if external_id != provider_user_id
        ]
        # The store has no delete; a null value reads back as absent.
        self._store.set_many(
            {
                _reverse_key(user_id): index,
                _identity_key(provider, provider_user_id): None,
            }
        )

    def get_external_ids_for_user(self, provider: str, user_id: str) -> List[str]:
        return list(self._reverse_index(user_id).get(provider, []))
