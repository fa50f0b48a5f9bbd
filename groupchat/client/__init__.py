# =============================================================================
# File: groupchat/client/__init__.py
# Description: Client cache synchronizer and graph transport
# =============================================================================

from groupchat.client.cache_store import CacheStore
from groupchat.client.synchronizer import CacheSynchronizer, PendingMutation
from groupchat.client.transport import GraphTransport, HttpGraphTransport

__all__ = [
    "CacheStore",
    "CacheSynchronizer",
    "PendingMutation",
    "GraphTransport",
    "HttpGraphTransport",
]
