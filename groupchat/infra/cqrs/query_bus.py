# groupchat/infra/cqrs/query_bus.py
# =============================================================================
# File: groupchat/infra/cqrs/query_bus.py
# Description: Query Bus for read operations
# =============================================================================

import logging
from abc import ABC, abstractmethod
from typing import Dict, Type, Any, Callable, Awaitable, Union, List, TypeVar

from pydantic import BaseModel

from groupchat.common.exceptions.exceptions import GroupChatException

log = logging.getLogger("groupchat.cqrs.query")

TQuery = TypeVar('TQuery', bound='Query')
TResult = TypeVar('TResult')


# =============================================================================
# Base Classes
# =============================================================================

class Query(BaseModel):
    """Base class for all queries using Pydantic v2"""
    pass


class IQueryHandler(ABC):
    """Base class for all query handlers"""

    @abstractmethod
    async def handle(self, query: Query) -> Any:
        """
        Handle the query and return result.
        Subclasses must implement this method.
        """
        pass


# =============================================================================
# Middleware Support (Query-specific)
# =============================================================================

class QueryMiddleware(ABC):
    """Base middleware class for queries"""

    @abstractmethod
    async def process(
            self,
            query: Any,
            next_handler: Callable[[Any], Awaitable[Any]]
    ) -> Any:
        """Process query and call next handler"""
        pass


class QueryLoggingMiddleware(QueryMiddleware):
    """Logs all queries"""

    async def process(self, query: Any, next_handler: Callable) -> Any:
        query_type = type(query).__name__
        log.debug(f"Processing query {query_type}")

        try:
            result = await next_handler(query)
            log.debug(f"Query {query_type} completed successfully")
            return result
        except GroupChatException as e:
            log.info(f"Query {query_type} rejected: {e.code} {e.message}")
            raise
        except Exception as e:
            log.error(f"Query {query_type} failed: {e}", exc_info=True)
            raise


class QueryMetricsMiddleware(QueryMiddleware):
    """Tracks query execution metrics"""

    def __init__(self):
        self.query_counts: Dict[str, int] = {}
        self.query_errors: Dict[str, int] = {}

    async def process(self, query: Any, next_handler: Callable) -> Any:
        query_name = type(query).__name__
        self.query_counts[query_name] = self.query_counts.get(query_name, 0) + 1

        try:
            return await next_handler(query)
        except Exception:
            self.query_errors[query_name] = self.query_errors.get(query_name, 0) + 1
            raise

    def get_metrics(self) -> Dict[str, Any]:
        """Get query execution metrics"""
        return {
            "query_counts": self.query_counts.copy(),
            "query_errors": self.query_errors.copy(),
            "total_queries": sum(self.query_counts.values()),
            "total_errors": sum(self.query_errors.values())
        }


# =============================================================================
# Query Bus Implementation
# =============================================================================

class QueryBus:
    """
    Query Bus for read operations.
    Handlers are registered as factories and instantiated lazily on first use.
    """

    def __init__(self):
        self._handlers: Dict[str, IQueryHandler] = {}
        self._handler_factories: Dict[str, Callable[[], IQueryHandler]] = {}
        self._middleware: List[QueryMiddleware] = []

        self._metrics_middleware = QueryMetricsMiddleware()

        self.use(QueryLoggingMiddleware())
        self.use(self._metrics_middleware)

    def use(self, middleware: QueryMiddleware) -> 'QueryBus':
        """Add middleware to the pipeline"""
        self._middleware.append(middleware)
        return self

    def register_handler(
            self,
            query_type: Union[Type[Query], str],
            handler_factory: Callable[[], IQueryHandler]
    ) -> None:
        """Register a handler factory for a query type or name."""
        query_name = query_type if isinstance(query_type, str) else query_type.__name__
        self._handler_factories[query_name] = handler_factory
        self._handlers.pop(query_name, None)
        log.debug(f"Registered query handler for {query_name}")

    async def query(self, query: TQuery) -> TResult:
        """Execute a query through the middleware pipeline"""
        handler = self._build_handler_chain(query)
        return await handler(query)

    def _build_handler_chain(self, query: Query) -> Callable:
        """Build the middleware chain for queries"""
        query_name = type(query).__name__

        if query_name not in self._handlers:
            factory = self._handler_factories.get(query_name)
            if not factory:
                raise ValueError(
                    f"No handler registered for query {query_name}. "
                    f"Registered handlers: {sorted(self._handler_factories)}"
                )
            self._handlers[query_name] = factory()

        final_handler = self._handlers[query_name]

        async def handler_wrapper(q):
            return await final_handler.handle(q)

        chain = handler_wrapper

        for middleware in reversed(self._middleware):
            current_chain = chain

            async def wrapped(q, mw=middleware, next_h=current_chain):
                return await mw.process(q, next_h)

            chain = wrapped

        return chain

    def get_metrics(self) -> Dict[str, Any]:
        """Get query execution metrics"""
        return self._metrics_middleware.get_metrics()

# =============================================================================
# EOF
# =============================================================================
