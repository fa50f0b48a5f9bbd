"""
Shared fixtures for groupchat tests.

This module provides:
- Environment and config cache isolation (JWT secret, CHAT_/SYNC_/WSE_ settings)
- An in-memory persistence adapter seeded with the Book Club scenario
- Fully wired HandlerDependencies with command and query buses

Usage:
    async def test_example(deps, book_club, alice):
        result = await deps.command_bus.send(CreateMessageCommand(auth=alice, group_id=10, text="hi"))
"""

import pytest

from groupchat.chat.enums import EntityKind
from groupchat.config.chat_config import reset_chat_config
from groupchat.config.jwt_config import reset_jwt_config
from groupchat.config.sync_config import reset_sync_config
from groupchat.config.wse_config import WSEConfig, reset_wse_config
from groupchat.core.startup.cqrs import build_handler_dependencies
from groupchat.infra.persistence.memory_adapter import InMemoryPersistenceAdapter
from groupchat.security.auth_context import AuthContext
from groupchat.wse.core.pubsub_bus import PubSubBus

from tests.fakes.fake_clock import TickingClock

ALICE_ID = 1
BOB_ID = 2
CAROL_ID = 3
BOOK_CLUB_ID = 10


# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Fresh config singletons with a test JWT secret."""
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
    monkeypatch.setenv("WSE_REDIS_ENABLED", "false")
    for reset in (reset_jwt_config, reset_chat_config, reset_sync_config, reset_wse_config):
        reset()
    yield
    for reset in (reset_jwt_config, reset_chat_config, reset_sync_config, reset_wse_config):
        reset()


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def persistence():
    return InMemoryPersistenceAdapter()


@pytest.fixture
def pubsub_bus():
    return PubSubBus(config=WSEConfig(subscriber_queue_size=100))


@pytest.fixture
def deps(persistence, pubsub_bus, clock):
    return build_handler_dependencies(persistence, pubsub_bus, clock=clock)


# =============================================================================
# Users and groups
# =============================================================================


@pytest.fixture
async def users(persistence):
    """Alice(1) and Bob(2) are friends; Carol(3) knows nobody."""
    created = {}
    for user_id, name in ((ALICE_ID, "Alice"), (BOB_ID, "Bob"), (CAROL_ID, "Carol")):
        created[name] = await persistence.create(EntityKind.USER, {
            "id": user_id,
            "email": f"{name.lower()}@example.com",
            "username": name,
        })
    await persistence.add_friend(ALICE_ID, BOB_ID)
    return created


@pytest.fixture
async def book_club(persistence, users):
    """Group 10 "Book Club" with members Alice and Bob."""
    group = await persistence.create(EntityKind.GROUP, {"id": BOOK_CLUB_ID, "name": "Book Club"})
    await persistence.add_members(BOOK_CLUB_ID, [ALICE_ID, BOB_ID])
    return group


@pytest.fixture
def alice():
    return AuthContext(user_id=ALICE_ID)


@pytest.fixture
def bob():
    return AuthContext(user_id=BOB_ID)


@pytest.fixture
def carol():
    return AuthContext(user_id=CAROL_ID)


@pytest.fixture
def anonymous():
    return AuthContext.anonymous()
