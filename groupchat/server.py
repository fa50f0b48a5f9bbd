# =============================================================================
# File: groupchat/server.py
# Description: Main FastAPI application entry point
# =============================================================================

from __future__ import annotations

import logging
import os

from fastapi import FastAPI

from groupchat.core import __version__
from groupchat.core.exceptions import setup_exception_handlers
from groupchat.core.lifespan import build_lifespan
from groupchat.core.routes import setup_routes
from groupchat.config.logging_config import setup_logging

logger = logging.getLogger("groupchat.server")


def create_app(persistence=None) -> FastAPI:
    """Build the API application. `persistence` defaults to the in-memory adapter."""
    app = FastAPI(
        title=f"groupchat API v{__version__}",
        version=__version__,
        lifespan=build_lifespan(persistence),
        docs_url="/docs",
        openapi_url="/openapi.json",
    )
    setup_routes(app)
    setup_exception_handlers(app)
    return app


# =============================================================================
# FASTAPI APP
# =============================================================================
setup_logging(
    service_name="api",
    log_file=os.getenv("LOG_FILE") or None,
    enable_json=os.getenv("ENVIRONMENT") == "production",
)

app = create_app()

__all__ = ["app", "create_app", "__version__"]

# =============================================================================
# Development entry point
# =============================================================================
if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "5001"))
    logger.info(f"Starting groupchat API on {host}:{port}")
    uvicorn.run("groupchat.server:app", host=host, port=port)
