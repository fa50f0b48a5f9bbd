# =============================================================================
# File: groupchat/core/startup/cqrs.py
# Description: CQRS initialization with automatic handler registration
# =============================================================================

import importlib
import logging
from typing import Any, Callable, Dict, Optional

from groupchat.chat.pagination import PaginationEngine
from groupchat.config.chat_config import ChatConfig, get_chat_config
from groupchat.infra.cqrs.command_bus import CommandBus
from groupchat.infra.cqrs.decorators import auto_register_all_handlers, get_registered_handlers
from groupchat.infra.cqrs.handler_dependencies import HandlerDependencies, utc_now
from groupchat.infra.cqrs.query_bus import QueryBus
from groupchat.security.jwt_auth import JwtTokenManager
from groupchat.wse.core.pubsub_bus import PubSubBus
from groupchat.wse.publishers.domain_publisher import EventDispatcher

logger = logging.getLogger("groupchat.startup.cqrs")

HANDLER_MODULES = (
    "groupchat.chat.command_handlers",
    "groupchat.chat.query_handlers",
)


def import_handler_modules() -> None:
    """Import handler packages so their decorators register"""
    for module_name in HANDLER_MODULES:
        importlib.import_module(module_name)
        logger.debug(f"Imported handlers from {module_name}")


def build_handler_dependencies(
        persistence,
        pubsub_bus: PubSubBus,
        token_manager: Optional[JwtTokenManager] = None,
        chat_config: Optional[ChatConfig] = None,
        clock: Optional[Callable] = None,
) -> HandlerDependencies:
    """
    Wire persistence, pagination, event dispatch and both buses together
    and register every decorated handler.
    """
    chat_config = chat_config or get_chat_config()

    deps = HandlerDependencies(
        persistence=persistence,
        pagination=PaginationEngine(persistence, chat_config),
        dispatcher=EventDispatcher(pubsub_bus),
        token_manager=token_manager or JwtTokenManager(),
        chat_config=chat_config,
        clock=clock or utc_now,
    )
    deps.command_bus = CommandBus()
    deps.query_bus = QueryBus()

    import_handler_modules()
    stats: Dict[str, Any] = auto_register_all_handlers(deps.command_bus, deps.query_bus, deps)

    discovered = get_registered_handlers()
    logger.info(
        f"Registered {len(discovered['commands'])} command and "
        f"{len(discovered['queries'])} query handlers ({stats})"
    )
    return deps
