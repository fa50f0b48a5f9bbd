# groupchat/infra/cqrs/command_bus.py
# =============================================================================
# File: groupchat/infra/cqrs/command_bus.py
# Description: Command Bus with middleware pipeline and string-based routing
# =============================================================================

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Type, Any, Optional, List, Callable, Awaitable, Union

from pydantic import BaseModel, Field

from groupchat.common.exceptions.exceptions import GroupChatException

log = logging.getLogger("groupchat.cqrs.command")


# =============================================================================
# Base Classes
# =============================================================================

class Command(BaseModel):
    """Base class for all commands using Pydantic v2"""
    command_id: uuid.UUID = Field(default_factory=uuid.uuid4)


class ICommandHandler(ABC):
    """Base class for all command handlers"""

    @abstractmethod
    async def handle(self, command: Command) -> Any:
        """Handle the command and return result"""
        pass


# =============================================================================
# Middleware Support
# =============================================================================

class Middleware(ABC):
    """Base middleware class for commands"""

    @abstractmethod
    async def process(
            self,
            message: Any,
            next_handler: Callable[[Any], Awaitable[Any]]
    ) -> Any:
        """Process message and call next handler"""
        pass


class LoggingMiddleware(Middleware):
    """Logs all commands"""

    async def process(self, message: Any, next_handler: Callable) -> Any:
        message_type = type(message).__name__
        log.debug(f"Processing command {message_type} [{getattr(message, 'command_id', '-')}]")

        try:
            result = await next_handler(message)
            log.info(f"Successfully processed command {message_type}")
            return result
        except GroupChatException as e:
            # Domain failures are part of the contract, not server faults
            log.info(f"Command {message_type} rejected: {e.code} {e.message}")
            raise
        except Exception as e:
            log.error(f"Failed to process command {message_type}: {e}", exc_info=True)
            raise


class MetricsMiddleware(Middleware):
    """Tracks command execution metrics"""

    def __init__(self):
        self.command_counts: Dict[str, int] = {}
        self.command_errors: Dict[str, int] = {}

    async def process(self, message: Any, next_handler: Callable) -> Any:
        command_name = type(message).__name__
        self.command_counts[command_name] = self.command_counts.get(command_name, 0) + 1

        try:
            return await next_handler(message)
        except Exception:
            self.command_errors[command_name] = self.command_errors.get(command_name, 0) + 1
            raise

    def get_metrics(self) -> Dict[str, Any]:
        """Get command execution metrics"""
        return {
            "command_counts": self.command_counts.copy(),
            "command_errors": self.command_errors.copy(),
            "total_commands": sum(self.command_counts.values()),
            "total_errors": sum(self.command_errors.values())
        }


# =============================================================================
# Command Bus Implementation
# =============================================================================

class CommandBus:
    """
    Command Bus with middleware pipeline.
    Handlers are registered as factories and instantiated lazily on first use.
    """

    def __init__(self):
        self._handlers: Dict[str, ICommandHandler] = {}
        self._handler_factories: Dict[str, Callable[[], ICommandHandler]] = {}
        self._middleware: List[Middleware] = []

        self._metrics_middleware = MetricsMiddleware()

        self.use(LoggingMiddleware())
        self.use(self._metrics_middleware)

    def use(self, middleware: Middleware) -> 'CommandBus':
        """Add middleware to the pipeline"""
        self._middleware.append(middleware)
        return self

    def register_handler(
            self,
            command_type: Union[Type[Command], str],
            handler_factory: Callable[[], ICommandHandler]
    ) -> None:
        """
        Register a handler factory for a command type or name.
        Raises ValueError if a different handler is already registered.
        """
        command_name = command_type if isinstance(command_type, str) else command_type.__name__

        existing_factory = self._handler_factories.get(command_name)
        if existing_factory is not None and existing_factory != handler_factory:
            raise ValueError(
                f"Duplicate command handler: '{command_name}' already has a registered handler. "
                f"Existing: {existing_factory}, Attempted: {handler_factory}"
            )

        self._handler_factories[command_name] = handler_factory
        self._handlers.pop(command_name, None)
        log.debug(f"Registered handler for {command_name}")

    async def send(self, command: Command) -> Any:
        """
        Send a command through the middleware pipeline to its handler.
        This is the main entry point for command execution.
        """
        handler = self._build_handler_chain(command)
        return await handler(command)

    def _resolve_handler(self, command_name: str) -> ICommandHandler:
        if command_name not in self._handlers:
            factory = self._handler_factories.get(command_name)
            if not factory:
                raise ValueError(
                    f"No handler registered for {command_name}. "
                    f"Registered handlers: {sorted(self._handler_factories)}"
                )
            self._handlers[command_name] = factory()
        return self._handlers[command_name]

    def _build_handler_chain(self, command: Command) -> Callable:
        """Build the middleware chain ending with the actual handler"""
        final_handler = self._resolve_handler(type(command).__name__)

        async def handler_wrapper(cmd):
            return await final_handler.handle(cmd)

        chain = handler_wrapper

        # Wrap with middleware in reverse order
        for middleware in reversed(self._middleware):
            current_chain = chain

            async def wrapped(cmd, mw=middleware, next_h=current_chain):
                return await mw.process(cmd, next_h)

            chain = wrapped

        return chain

    def get_metrics(self) -> Dict[str, Any]:
        """Get command execution metrics"""
        return self._metrics_middleware.get_metrics()

    def get_handler_info(self) -> Dict[str, Any]:
        """Get information about registered handlers"""
        return {
            "handlers": sorted(self._handler_factories),
            "total_handlers": len(self._handler_factories),
            "middleware_count": len(self._middleware)
        }

# =============================================================================
# EOF
# =============================================================================
