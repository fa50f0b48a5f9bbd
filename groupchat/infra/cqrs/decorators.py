# groupchat/infra/cqrs/decorators.py
"""
Auto-registration decorators for CQRS handlers
Provides automatic handler discovery and registration
"""
import logging
from typing import Type, Dict, Any, List

log = logging.getLogger("groupchat.cqrs.decorators")

# Global registries for handlers
_COMMAND_HANDLERS: Dict[Type, Type] = {}
_QUERY_HANDLERS: Dict[Type, Type] = {}


def _register(registry: Dict[Type, Type], message_type: Type, handler_class: Type, kind: str) -> Type:
    existing_handler = registry.get(message_type)
    if existing_handler is not None and existing_handler is not handler_class:
        raise ValueError(
            f"Duplicate {kind} handler: {message_type.__name__} already handled by "
            f"{existing_handler.__name__} in {existing_handler.__module__}"
        )

    registry[message_type] = handler_class
    handler_class._handler_type = kind
    handler_class._message_type = message_type

    log.debug(
        f"Auto-registered {kind} handler: {handler_class.__name__} "
        f"for {message_type.__name__} in {handler_class.__module__}"
    )
    return handler_class


def command_handler(command_type: Type):
    """
    Decorator for command handler auto-registration

    Usage:
        @command_handler(CreateMessageCommand)
        class CreateMessageHandler(BaseCommandHandler):
            def __init__(self, deps):
                super().__init__(deps)

            async def handle(self, command: CreateMessageCommand):
                ...
    """

    def decorator(handler_class: Type):
        return _register(_COMMAND_HANDLERS, command_type, handler_class, 'command')

    return decorator


def query_handler(query_type: Type):
    """
    Decorator for query handler auto-registration

    Usage:
        @query_handler(GetGroupQuery)
        class GetGroupQueryHandler(BaseQueryHandler):
            ...
    """

    def decorator(handler_class: Type):
        return _register(_QUERY_HANDLERS, query_type, handler_class, 'query')

    return decorator


def auto_register_all_handlers(command_bus, query_bus, dependencies) -> Dict[str, Any]:
    """
    Register all decorated handlers with their buses

    Args:
        command_bus: The command bus instance
        query_bus: The query bus instance
        dependencies: HandlerDependencies instance shared by every handler

    Returns:
        Statistics about registered handlers
    """

    # Closure captures handler_class and dependencies per registration
    def make_factory(h_class, deps):
        def factory():
            return h_class(deps)

        return factory

    for command_type, handler_class in _COMMAND_HANDLERS.items():
        command_bus.register_handler(command_type, make_factory(handler_class, dependencies))

    for query_type, handler_class in _QUERY_HANDLERS.items():
        query_bus.register_handler(query_type, make_factory(handler_class, dependencies))

    log.info(
        f"Auto-registration complete: {len(_COMMAND_HANDLERS)} commands, "
        f"{len(_QUERY_HANDLERS)} queries"
    )

    return {
        'commands': len(_COMMAND_HANDLERS),
        'queries': len(_QUERY_HANDLERS),
        'total': len(_COMMAND_HANDLERS) + len(_QUERY_HANDLERS),
    }


def get_registered_handlers() -> Dict[str, List[str]]:
    """Get information about all registered handlers"""
    return {
        'commands': sorted(t.__name__ for t in _COMMAND_HANDLERS),
        'queries': sorted(t.__name__ for t in _QUERY_HANDLERS),
    }
