# =============================================================================
# File: groupchat/core/__init__.py
# Description: Application assembly (lifespan, routes, exception handlers)
# =============================================================================

from groupchat import __version__

__all__ = ["__version__"]
