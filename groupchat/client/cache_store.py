# =============================================================================
# File: groupchat/client/cache_store.py
# Description: Client cache of immutable snapshots, patched atomically
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, Hashable, Mapping, Optional, Tuple

log = logging.getLogger("groupchat.client.cache")

ConnectionKey = Tuple[str, int]


def messages_key(group_id: int) -> ConnectionKey:
    return ("messages", group_id)


def groups_key(user_id: int) -> ConnectionKey:
    return ("groups", user_id)


class CacheStore:
    """
    Single shared store of immutable values keyed by connection key.

    Writers go through patch(key, transform); the transform receives the
    current value (or None) and returns the next one, or None to evict.
    Patches are serialized by one lock and readers only ever see whole
    snapshots.
    """

    def __init__(self):
        self._values: Dict[Hashable, Any] = {}
        self._lock = asyncio.Lock()
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def get(self, key: Hashable, default: Any = None) -> Any:
        return self._values.get(key, default)

    def snapshot(self) -> Mapping[Hashable, Any]:
        return MappingProxyType(dict(self._values))

    async def patch(self, key: Hashable, transform: Callable[[Optional[Any]], Optional[Any]]) -> Optional[Any]:
        """Apply transform to the value under key and return the new value."""
        async with self._lock:
            current = self._values.get(key)
            updated = transform(current)

            if updated is current:
                return current

            if updated is None:
                self._values.pop(key, None)
            else:
                self._values[key] = updated

            self._version += 1
            log.debug(f"[CACHE] Patched {key} (version {self._version})")
            return updated

    async def evict(self, key: Hashable) -> None:
        await self.patch(key, lambda _: None)
