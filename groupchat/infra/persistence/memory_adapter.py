# =============================================================================
# File: groupchat/infra/persistence/memory_adapter.py
# Description: In-memory implementation of the persistence port
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Type

from pydantic import BaseModel

from groupchat.chat.cursor import MessageKey
from groupchat.chat.enums import EntityKind
from groupchat.chat.read_models import GroupReadModel, MessageReadModel, UserReadModel

log = logging.getLogger("groupchat.persistence.memory")

_MODELS: Dict[EntityKind, Type[BaseModel]] = {
    EntityKind.USER: UserReadModel,
    EntityKind.GROUP: GroupReadModel,
    EntityKind.MESSAGE: MessageReadModel,
}


class InMemoryPersistenceAdapter:
    """
    Dict-backed storage for development and tests.

    Writes are serialized under one asyncio.Lock. Records are immutable
    pydantic models, so reads hand out snapshots without copying.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._tables: Dict[EntityKind, Dict[int, BaseModel]] = {kind: {} for kind in EntityKind}
        self._next_ids: Dict[EntityKind, int] = {kind: 1 for kind in EntityKind}
        # (group_id, user_id)
        self._memberships: Set[Tuple[int, int]] = set()
        # (user_id, friend_id), stored in both directions
        self._friendships: Set[Tuple[int, int]] = set()

    # =========================================================================
    # Entity CRUD
    # =========================================================================

    async def find_by_id(self, kind: EntityKind, entity_id: int) -> Optional[Any]:
        return self._tables[kind].get(entity_id)

    async def find_where(self, kind: EntityKind, **criteria: Any) -> List[Any]:
        return [
            entity
            for _, entity in sorted(self._tables[kind].items())
            if all(getattr(entity, key, None) == value for key, value in criteria.items())
        ]

    async def create(self, kind: EntityKind, data: Dict[str, Any]) -> Any:
        async with self._lock:
            entity = self._insert(kind, data)

        log.debug(f"Created {kind.value} {entity.id}")
        return entity

    def _insert(self, kind: EntityKind, data: Dict[str, Any]) -> Any:
        # Caller holds self._lock
        entity_id = data.get("id")
        if entity_id is None:
            entity_id = self._next_ids[kind]
        elif entity_id in self._tables[kind]:
            raise ValueError(f"{kind.value} {entity_id} already exists")

        entity = _MODELS[kind](**{**data, "id": entity_id})
        self._tables[kind][entity_id] = entity
        self._next_ids[kind] = max(self._next_ids[kind], entity_id + 1)
        return entity

    async def update(self, kind: EntityKind, entity_id: int, changes: Dict[str, Any]) -> Optional[Any]:
        async with self._lock:
            current = self._tables[kind].get(entity_id)
            if current is None:
                return None
            updated = current.model_copy(update={k: v for k, v in changes.items() if k != "id"})
            self._tables[kind][entity_id] = updated
            return updated

    async def destroy(self, kind: EntityKind, entity_id: int) -> bool:
        async with self._lock:
            return self._tables[kind].pop(entity_id, None) is not None

    # =========================================================================
    # Associations
    # =========================================================================

    async def get_members(self, group_id: int) -> List[UserReadModel]:
        users = self._tables[EntityKind.USER]
        member_ids = sorted(uid for gid, uid in self._memberships if gid == group_id)
        return [users[uid] for uid in member_ids if uid in users]

    async def is_member(self, group_id: int, user_id: int) -> bool:
        return (group_id, user_id) in self._memberships

    async def add_members(self, group_id: int, user_ids: Sequence[int]) -> None:
        async with self._lock:
            self._memberships.update((group_id, uid) for uid in user_ids)

    async def remove_member(self, group_id: int, user_id: int) -> int:
        async with self._lock:
            self._memberships.discard((group_id, user_id))
            return sum(1 for gid, _ in self._memberships if gid == group_id)

    async def remove_all_members(self, group_id: int) -> int:
        async with self._lock:
            edges = {edge for edge in self._memberships if edge[0] == group_id}
            self._memberships -= edges
            return len(edges)

    async def get_groups_for_user(self, user_id: int) -> List[GroupReadModel]:
        groups = self._tables[EntityKind.GROUP]
        group_ids = sorted(gid for gid, uid in self._memberships if uid == user_id)
        return [groups[gid] for gid in group_ids if gid in groups]

    async def get_friends(self, user_id: int) -> List[UserReadModel]:
        users = self._tables[EntityKind.USER]
        friend_ids = sorted(fid for uid, fid in self._friendships if uid == user_id)
        return [users[fid] for fid in friend_ids if fid in users]

    async def add_friend(self, user_id: int, friend_id: int) -> None:
        async with self._lock:
            self._friendships.add((user_id, friend_id))
            self._friendships.add((friend_id, user_id))

    # =========================================================================
    # Messages
    # =========================================================================

    async def insert_message(self, data: Dict[str, Any]) -> Tuple[MessageReadModel, bool]:
        token = data.get("correlation_token")
        async with self._lock:
            if token is not None:
                for message in self._tables[EntityKind.MESSAGE].values():
                    if (message.user_id, message.group_id, message.correlation_token) == (
                            data["user_id"], data["group_id"], token):
                        return message, False
            message = self._insert(EntityKind.MESSAGE, data)

        log.debug(f"Created message {message.id} in group {message.group_id}")
        return message, True

    async def destroy_messages_for_group(self, group_id: int) -> int:
        async with self._lock:
            messages = self._tables[EntityKind.MESSAGE]
            doomed = [mid for mid, msg in messages.items() if msg.group_id == group_id]
            for mid in doomed:
                del messages[mid]
            return len(doomed)

    async def query_messages(
        self,
        group_id: int,
        older_than: Optional[MessageKey] = None,
        newer_than: Optional[MessageKey] = None,
        limit: Optional[int] = None,
        newest_first: bool = True,
    ) -> List[MessageReadModel]:
        keyed = []
        for message in self._tables[EntityKind.MESSAGE].values():
            if message.group_id != group_id:
                continue
            key = MessageKey.of(message)
            if older_than is not None and not key < older_than:
                continue
            if newer_than is not None and not key > newer_than:
                continue
            keyed.append((key, message))

        keyed.sort(key=lambda pair: pair[0], reverse=newest_first)
        rows = [message for _, message in keyed]
        return rows if limit is None else rows[:limit]
