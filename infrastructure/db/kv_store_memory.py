from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Mapping, Optional

from domain.repositories import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """
    Process-local implementation of `KeyValueStore`.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            value = self._data.get(key)
        return copy.deepcopy(value)

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, Any]) -> None:
        staged = {key: copy.deepcopy(value) for key, value in items.items()}
        with self._lock:
            self._data.update(staged)
