"""Tests for topic pub/sub, Redis fan-out and subscription authorization."""

import asyncio

import pytest

from groupchat.chat.commands import CreateMessageCommand, DeleteGroupCommand, LeaveGroupCommand
from groupchat.chat.exceptions import GroupNotFoundError, NotGroupMemberError
from groupchat.common.exceptions.exceptions import AuthenticationError, AuthorizationError, ValidationError
from groupchat.config.wse_config import WSEConfig
from groupchat.wse.core.pubsub_bus import PubSubBus
from groupchat.wse.core.topics import group_messages_topic, user_groups_topic
from groupchat.wse.subscriptions import (
    GROUP_ADDED,
    MESSAGE_ADDED,
    SubscriptionSession,
    authorize_group_added,
    authorize_message_added,
)

from tests.conftest import ALICE_ID, BOB_ID, BOOK_CLUB_ID
from tests.fakes.fake_redis import FakeRedisBroker

TOPIC = group_messages_topic(BOOK_CLUB_ID)


class TestLocalDelivery:

    async def test_events_arrive_in_publish_order(self, pubsub_bus):
        subscription = pubsub_bus.subscribe([TOPIC])

        for i in range(3):
            await pubsub_bus.publish(TOPIC, {"event_type": "messageAdded", "n": i})

        received = [await subscription.get(timeout=1.0) for _ in range(3)]
        assert [e["n"] for e in received] == [0, 1, 2]

    async def test_only_matching_topics_are_delivered(self, pubsub_bus):
        subscription = pubsub_bus.subscribe([TOPIC])

        delivered = await pubsub_bus.publish(group_messages_topic(99), {"event_type": "messageAdded"})

        assert delivered == 0
        assert subscription.queue.empty()

    async def test_unsubscribe_stops_delivery(self, pubsub_bus):
        subscription = pubsub_bus.subscribe([TOPIC])
        pubsub_bus.unsubscribe(subscription)

        assert await pubsub_bus.publish(TOPIC, {"event_type": "messageAdded"}) == 0
        assert pubsub_bus.subscriber_count(TOPIC) == 0

    async def test_full_queue_drops_instead_of_blocking(self):
        bus = PubSubBus(config=WSEConfig(subscriber_queue_size=1, send_timeout_seconds=0.01))
        bus.subscribe([TOPIC])

        await bus.publish(TOPIC, {"event_type": "messageAdded"})
        await bus.publish(TOPIC, {"event_type": "messageAdded"})

        assert bus.get_metrics()["messages_dropped"] == 1


class TestRedisFanOut:

    @pytest.fixture
    async def buses(self):
        broker = FakeRedisBroker()
        config = WSEConfig(subscriber_queue_size=10)
        first = PubSubBus(redis_client=broker.client(), config=config.model_copy(update={"instance_id": "a"}))
        second = PubSubBus(redis_client=broker.client(), config=config.model_copy(update={"instance_id": "b"}))
        await first.initialize()
        await second.initialize()
        yield first, second, broker
        await first.shutdown()
        await second.shutdown()

    async def test_events_reach_subscribers_on_other_instances(self, buses):
        first, second, broker = buses
        remote = second.subscribe([TOPIC])

        await first.publish(TOPIC, {"event_type": "messageAdded", "n": 1})

        event = await remote.get(timeout=2.0)
        assert event == {"event_type": "messageAdded", "n": 1}
        assert broker.published[0][0] == f"wse:{TOPIC}"

    async def test_own_echo_is_not_delivered_twice(self, buses):
        first, second, _ = buses
        local = first.subscribe([TOPIC])
        remote = second.subscribe([TOPIC])

        await first.publish(TOPIC, {"event_type": "messageAdded"})
        await remote.get(timeout=2.0)
        await asyncio.sleep(0.05)

        assert local.queue.qsize() == 1

    async def test_shutdown_closes_the_pubsub_connection(self):
        broker = FakeRedisBroker()
        bus = PubSubBus(redis_client=broker.client(), config=WSEConfig())
        await bus.initialize()
        pubsub = bus.pubsub

        await bus.shutdown()

        assert pubsub.closed
        assert broker.pubsubs == set()


class TestSubscriptionAuthorization:

    async def test_member_gets_one_topic_per_group(self, persistence, alice, book_club):
        topics = await authorize_message_added(persistence, alice, [BOOK_CLUB_ID, BOOK_CLUB_ID])

        assert topics == [TOPIC]

    async def test_every_group_requires_membership(self, persistence, carol, book_club):
        with pytest.raises(NotGroupMemberError):
            await authorize_message_added(persistence, carol, [BOOK_CLUB_ID])

    async def test_unknown_group(self, persistence, alice, book_club):
        with pytest.raises(GroupNotFoundError):
            await authorize_message_added(persistence, alice, [BOOK_CLUB_ID, 404])

    async def test_empty_group_list(self, persistence, alice, users):
        with pytest.raises(ValidationError):
            await authorize_message_added(persistence, alice, [])

    async def test_group_added_is_limited_to_the_caller(self, persistence, alice, users):
        assert await authorize_group_added(persistence, alice, ALICE_ID) == [user_groups_topic(ALICE_ID)]

        with pytest.raises(AuthorizationError):
            await authorize_group_added(persistence, alice, BOB_ID)

    async def test_anonymous_cannot_subscribe(self, persistence, anonymous, book_club):
        with pytest.raises(AuthenticationError):
            await authorize_message_added(persistence, anonymous, [BOOK_CLUB_ID])


class TestSubscriptionSession:

    async def test_forwards_events_as_frames(self, persistence, pubsub_bus, alice, book_club):
        frames = []
        received = asyncio.Event()

        async def send(frame):
            frames.append(frame)
            received.set()

        session = SubscriptionSession(pubsub_bus, persistence, alice, send)
        subscription_id = await session.subscribe(MESSAGE_ADDED, group_ids=[BOOK_CLUB_ID])

        await pubsub_bus.publish(TOPIC, {"event_type": "messageAdded", "group_id": BOOK_CLUB_ID})
        await asyncio.wait_for(received.wait(), timeout=1.0)

        assert frames == [{
            "type": "event",
            "id": subscription_id,
            "subscription": MESSAGE_ADDED,
            "payload": {"event_type": "messageAdded", "group_id": BOOK_CLUB_ID},
        }]

        await session.close()
        assert pubsub_bus.subscriber_count(TOPIC) == 0

    async def test_rejects_unknown_subscription_kinds(self, persistence, pubsub_bus, alice, users):
        async def send(frame):
            pass

        session = SubscriptionSession(pubsub_bus, persistence, alice, send)

        with pytest.raises(ValidationError):
            await session.subscribe("everything")
        with pytest.raises(ValidationError):
            await session.subscribe(GROUP_ADDED)

    async def test_leaving_the_group_stops_message_delivery(self, deps, persistence, pubsub_bus, alice, bob, book_club):
        bob_frames = []
        alice_frames = []
        alice_received = asyncio.Event()

        async def send_to_bob(frame):
            bob_frames.append(frame)

        async def send_to_alice(frame):
            alice_frames.append(frame)
            alice_received.set()

        bob_session = SubscriptionSession(pubsub_bus, persistence, bob, send_to_bob)
        alice_session = SubscriptionSession(pubsub_bus, persistence, alice, send_to_alice)
        await bob_session.subscribe(MESSAGE_ADDED, group_ids=[BOOK_CLUB_ID])
        await alice_session.subscribe(MESSAGE_ADDED, group_ids=[BOOK_CLUB_ID])

        await deps.command_bus.send(LeaveGroupCommand(auth=bob, group_id=BOOK_CLUB_ID))
        await deps.command_bus.send(CreateMessageCommand(auth=alice, group_id=BOOK_CLUB_ID, text="secret"))
        await asyncio.wait_for(alice_received.wait(), timeout=1.0)
        await asyncio.sleep(0.05)

        assert [f["payload"]["message"]["text"] for f in alice_frames] == ["secret"]
        assert bob_frames == []

        await bob_session.close()
        await alice_session.close()

    async def test_deleted_group_stops_message_delivery(self, deps, persistence, pubsub_bus, alice, bob, book_club):
        frames = []

        async def send(frame):
            frames.append(frame)

        session = SubscriptionSession(pubsub_bus, persistence, bob, send)
        await session.subscribe(MESSAGE_ADDED, group_ids=[BOOK_CLUB_ID])

        await deps.command_bus.send(DeleteGroupCommand(auth=alice, group_id=BOOK_CLUB_ID))
        # An event already in flight when the group went away
        await pubsub_bus.publish(TOPIC, {"event_type": "messageAdded", "group_id": BOOK_CLUB_ID})
        await asyncio.sleep(0.05)

        assert frames == []
        await session.close()

    async def test_close_survives_a_failed_send(self, persistence, pubsub_bus, alice, book_club):
        attempted = asyncio.Event()

        async def send(frame):
            attempted.set()
            raise RuntimeError("socket gone")

        session = SubscriptionSession(pubsub_bus, persistence, alice, send)
        await session.subscribe(MESSAGE_ADDED, group_ids=[BOOK_CLUB_ID])
        await session.subscribe(GROUP_ADDED, user_id=ALICE_ID)

        await pubsub_bus.publish(TOPIC, {"event_type": "messageAdded", "group_id": BOOK_CLUB_ID})
        await asyncio.wait_for(attempted.wait(), timeout=1.0)
        await asyncio.sleep(0)

        await session.close()

        assert pubsub_bus.subscriber_count(TOPIC) == 0
        assert pubsub_bus.subscriber_count(user_groups_topic(ALICE_ID)) == 0
