# =============================================================================
# File: groupchat/core/routes.py
# Description: Route registration for FastAPI application
# =============================================================================

import logging

from fastapi import FastAPI, Request

from groupchat.api.routers.auth_router import router as auth_router
from groupchat.api.routers.graph_router import router as graph_router
from groupchat.api.routers.wse_router import router as wse_router

logger = logging.getLogger("groupchat.routes")


def setup_routes(app: FastAPI) -> None:
    """Register all routers with the FastAPI application"""

    app.include_router(auth_router)
    app.include_router(graph_router)
    app.include_router(wse_router)
    register_health_endpoints(app)

    logger.info("Core routers registered")


def register_health_endpoints(app: FastAPI) -> None:

    @app.get("/health", tags=["Health"])
    async def health(request: Request):
        bus = getattr(request.app.state, "pubsub_bus", None)
        return {
            "status": "ok",
            "pubsub": bus.get_metrics() if bus else None,
        }
