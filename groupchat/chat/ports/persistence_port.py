# =============================================================================
# File: groupchat/chat/ports/persistence_port.py
# Description: Port interface for user/group/message storage
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from groupchat.chat.cursor import MessageKey
from groupchat.chat.enums import EntityKind
from groupchat.chat.read_models import GroupReadModel, MessageReadModel, UserReadModel


@runtime_checkable
class PersistencePort(Protocol):
    """
    Port: Persistence

    Defined by: Chat Domain
    Implemented by: InMemoryPersistenceAdapter (groupchat/infra/persistence/memory_adapter.py)

    Entity operations take an EntityKind and return read models. The adapter
    assigns monotonically increasing integer ids per kind and serializes writes.
    """

    # =========================================================================
    # Entity CRUD
    # =========================================================================

    async def find_by_id(self, kind: EntityKind, entity_id: int) -> Optional[Any]:
        """Return the entity or None."""
        ...

    async def find_where(self, kind: EntityKind, **criteria: Any) -> List[Any]:
        """Return entities whose fields equal every criterion, ordered by id."""
        ...

    async def create(self, kind: EntityKind, data: Dict[str, Any]) -> Any:
        """Insert an entity and return it with its assigned id."""
        ...

    async def update(self, kind: EntityKind, entity_id: int, changes: Dict[str, Any]) -> Optional[Any]:
        """Apply changes and return the updated entity, or None when missing."""
        ...

    async def destroy(self, kind: EntityKind, entity_id: int) -> bool:
        """Delete an entity. Returns False when it did not exist."""
        ...

    # =========================================================================
    # Associations
    # =========================================================================

    async def get_members(self, group_id: int) -> List[UserReadModel]:
        ...

    async def is_member(self, group_id: int, user_id: int) -> bool:
        ...

    async def add_members(self, group_id: int, user_ids: Sequence[int]) -> None:
        ...

    async def remove_member(self, group_id: int, user_id: int) -> int:
        """Remove one membership edge and return the remaining member count."""
        ...

    async def remove_all_members(self, group_id: int) -> int:
        """Remove every membership edge of a group and return how many were removed."""
        ...

    async def get_groups_for_user(self, user_id: int) -> List[GroupReadModel]:
        ...

    async def get_friends(self, user_id: int) -> List[UserReadModel]:
        ...

    async def add_friend(self, user_id: int, friend_id: int) -> None:
        """Create a symmetric friendship."""
        ...

    # =========================================================================
    # Messages
    # =========================================================================

    async def insert_message(self, data: Dict[str, Any]) -> Tuple[MessageReadModel, bool]:
        """
        Insert a message unless the same author already stored one in the
        group under data["correlation_token"]. Returns (message, created);
        the lookup and the insert are one atomic step.
        """
        ...

    async def destroy_messages_for_group(self, group_id: int) -> int:
        """Delete every message of a group and return how many were deleted."""
        ...

    async def query_messages(
        self,
        group_id: int,
        older_than: Optional[MessageKey] = None,
        newer_than: Optional[MessageKey] = None,
        limit: Optional[int] = None,
        newest_first: bool = True,
    ) -> List[MessageReadModel]:
        """
        Ordered range read over a group's messages.

        Keys strictly between the bounds are returned, sorted by
        (created_at, id) descending when newest_first, ascending otherwise,
        truncated to limit.
        """
        ...
