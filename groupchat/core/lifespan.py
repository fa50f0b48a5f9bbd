# =============================================================================
# File: groupchat/core/lifespan.py
# Description: Application lifespan management (startup/shutdown)
# =============================================================================

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as aioredis
from fastapi import FastAPI

from groupchat.core import __version__
from groupchat.core.startup.cqrs import build_handler_dependencies
from groupchat.config.wse_config import get_wse_config
from groupchat.infra.persistence.memory_adapter import InMemoryPersistenceAdapter
from groupchat.wse.core.pubsub_bus import PubSubBus

logger = logging.getLogger("groupchat.lifespan")


def build_lifespan(persistence=None):
    """
    Lifespan factory. `persistence` overrides the in-memory adapter
    (tests and embedding applications pass their own).
    """

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI):
        logger.info(f"groupchat {__version__} API starting up...")
        redis_client: Optional[aioredis.Redis] = None
        pubsub_bus: Optional[PubSubBus] = None

        try:
            # Phase 1: Pub/sub transport
            logger.info("Phase 1: Initializing pub/sub...")
            wse_config = get_wse_config()
            if wse_config.redis_enabled:
                redis_client = aioredis.from_url(
                    wse_config.redis_url.get_secret_value(),
                    decode_responses=False,
                )
            pubsub_bus = PubSubBus(redis_client=redis_client, config=wse_config)
            await pubsub_bus.initialize()
            app_instance.state.pubsub_bus = pubsub_bus

            # Phase 2: Persistence
            logger.info("Phase 2: Initializing persistence...")
            app_instance.state.persistence = persistence or InMemoryPersistenceAdapter()

            # Phase 3: CQRS handlers
            logger.info("Phase 3: Initializing CQRS...")
            deps = build_handler_dependencies(app_instance.state.persistence, pubsub_bus)
            app_instance.state.handler_deps = deps
            app_instance.state.command_bus = deps.command_bus
            app_instance.state.query_bus = deps.query_bus

            logger.info("=" * 60)
            logger.info(f"groupchat v{__version__} ready to serve requests")
            logger.info("=" * 60)

            yield

        except Exception as startup_error:
            logger.error(f"Critical error during startup: {startup_error}", exc_info=True)
            raise

        finally:
            logger.info(f"groupchat v{__version__} API shutting down...")
            try:
                async with asyncio.timeout(30.0):
                    if pubsub_bus is not None:
                        await pubsub_bus.shutdown()
                    if redis_client is not None:
                        await redis_client.aclose()
                logger.info(f"groupchat v{__version__} API stopped gracefully")
            except TimeoutError:
                logger.error("Shutdown timed out after 30s, forcing exit")
            except Exception as e:
                logger.error(f"Error during shutdown: {e}", exc_info=True)

    return lifespan

# =============================================================================
# EOF
# =============================================================================
