"""
Handler Dependencies - groupchat

Common dependencies container for all command and query handlers.

Architecture: Ports & Adapters
- Ports are defined in domain: groupchat/chat/ports/
- Adapters implement ports: groupchat/infra/persistence/
- Dependencies inject port types, not concrete adapters
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from groupchat.chat.pagination import PaginationEngine
    from groupchat.chat.ports.persistence_port import PersistencePort
    from groupchat.config.chat_config import ChatConfig
    from groupchat.infra.cqrs.command_bus import CommandBus
    from groupchat.infra.cqrs.query_bus import QueryBus
    from groupchat.security.jwt_auth import JwtTokenManager
    from groupchat.wse.publishers.domain_publisher import EventDispatcher


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class HandlerDependencies:
    """
    Container for all handler dependencies.

    Dependencies are injected at application startup (or by test fixtures).
    Handlers type-hint the persistence PORT, never a concrete adapter, so
    tests and the in-memory server share the same wiring.
    """

    # =========================================================================
    # Core
    # =========================================================================

    persistence: 'PersistencePort'
    pagination: 'PaginationEngine'
    dispatcher: 'EventDispatcher'

    # =========================================================================
    # Security
    # =========================================================================

    token_manager: Optional['JwtTokenManager'] = None

    # =========================================================================
    # Buses (set after construction)
    # =========================================================================

    command_bus: Optional['CommandBus'] = None
    query_bus: Optional['QueryBus'] = None

    # =========================================================================
    # Configuration
    # =========================================================================

    chat_config: Optional['ChatConfig'] = None
    clock: Callable[[], datetime] = field(default=utc_now)
