"""Tests for cursor pagination over a group's messages."""

import pytest

from groupchat.chat.cursor import encode_cursor
from groupchat.chat.enums import EntityKind, PageDirection
from groupchat.chat.exceptions import InvalidCursorError
from groupchat.chat.pagination import PaginationEngine, resolve_page_window
from groupchat.common.exceptions.exceptions import ValidationError
from groupchat.config.chat_config import ChatConfig

from tests.conftest import ALICE_ID, BOB_ID, BOOK_CLUB_ID


async def _post(persistence, clock, count, group_id=BOOK_CLUB_ID):
    """Create `count` messages, oldest first; returns them in creation order."""
    created = []
    for i in range(count):
        created.append(await persistence.create(EntityKind.MESSAGE, {
            "text": f"message {i + 1}",
            "created_at": clock(),
            "user_id": ALICE_ID if i % 2 == 0 else BOB_ID,
            "group_id": group_id,
        }))
    return created


@pytest.fixture
def engine(persistence):
    return PaginationEngine(persistence, ChatConfig())


def _ids(connection):
    return [edge.node.id for edge in connection.edges]


# =============================================================================
# Argument validation
# =============================================================================


class TestResolvePageWindow:

    @pytest.mark.parametrize("kwargs", [
        {"first": 2, "last": 2},
        {"after": "0" * 26, "last": 2},
        {"before": "0" * 26, "first": 2},
        {"after": "0" * 26, "before": "0" * 26},
    ])
    def test_conflicting_arguments_are_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            resolve_page_window(config=ChatConfig(), **kwargs)

    @pytest.mark.parametrize("kwargs", [{"first": 0}, {"first": -3}, {"last": 0}])
    def test_non_positive_sizes_are_rejected(self, kwargs):
        with pytest.raises(ValidationError):
            resolve_page_window(config=ChatConfig(), **kwargs)

    def test_defaults_to_forward_from_newest(self):
        window = resolve_page_window(config=ChatConfig())

        assert window.direction is PageDirection.FORWARD
        assert window.size == 5
        assert window.anchor is None

    def test_sizes_are_clamped(self):
        assert resolve_page_window(first=1000, config=ChatConfig()).size == 100

    def test_before_alone_pages_backward(self):
        window = resolve_page_window(before="0" * 26, config=ChatConfig())

        assert window.direction is PageDirection.BACKWARD
        assert window.size == 5

    def test_bad_cursor_is_rejected(self):
        with pytest.raises(InvalidCursorError):
            resolve_page_window(after="definitely-not-a-cursor", config=ChatConfig())

    async def test_validation_happens_before_storage_access(self):

        class ExplodingPersistence:
            async def query_messages(self, *args, **kwargs):
                raise AssertionError("storage must not be touched")

        engine = PaginationEngine(ExplodingPersistence(), ChatConfig())

        with pytest.raises(ValidationError):
            await engine.paginate(BOOK_CLUB_ID, first=5, last=5)


# =============================================================================
# Forward pagination
# =============================================================================


class TestForwardPagination:

    async def test_seven_messages_split_into_five_and_two(self, engine, persistence, clock, book_club):
        messages = await _post(persistence, clock, 7)
        newest_first = [m.id for m in reversed(messages)]

        page1 = await engine.paginate(BOOK_CLUB_ID, first=5)

        assert _ids(page1) == newest_first[:5]
        assert page1.page_info.has_next_page is True
        assert page1.page_info.has_previous_page is False

        page2 = await engine.paginate(BOOK_CLUB_ID, first=5, after=page1.page_info.end_cursor)

        assert _ids(page2) == newest_first[5:]
        assert page2.page_info.has_next_page is False
        assert page2.page_info.has_previous_page is True

    async def test_default_page_size_is_five(self, engine, persistence, clock, book_club):
        await _post(persistence, clock, 7)

        page = await engine.paginate(BOOK_CLUB_ID)

        assert len(page.edges) == 5

    @pytest.mark.parametrize("page_size", [1, 3, 4, 12, 20])
    async def test_chaining_after_yields_every_message_once(self, engine, persistence, clock, book_club, page_size):
        messages = await _post(persistence, clock, 12)

        seen = []
        after = None
        while True:
            page = await engine.paginate(BOOK_CLUB_ID, first=page_size, after=after)
            seen.extend(_ids(page))
            if not page.page_info.has_next_page:
                break
            after = page.page_info.end_cursor

        assert seen == [m.id for m in reversed(messages)]

    async def test_equal_timestamps_order_by_id_descending(self, engine, persistence, clock, book_club):
        clock.freeze()
        messages = await _post(persistence, clock, 4)

        page = await engine.paginate(BOOK_CLUB_ID, first=2)
        rest = await engine.paginate(BOOK_CLUB_ID, first=2, after=page.page_info.end_cursor)

        assert _ids(page) + _ids(rest) == [m.id for m in reversed(messages)]

    async def test_other_groups_are_not_included(self, engine, persistence, clock, book_club):
        await _post(persistence, clock, 2)
        await _post(persistence, clock, 3, group_id=99)

        page = await engine.paginate(BOOK_CLUB_ID, first=10)

        assert len(page.edges) == 2

    async def test_empty_group(self, engine, book_club):
        page = await engine.paginate(BOOK_CLUB_ID, first=5)

        assert page.edges == []
        assert page.page_info.has_next_page is False
        assert page.page_info.start_cursor is None
        assert page.page_info.end_cursor is None


# =============================================================================
# Backward pagination
# =============================================================================


class TestBackwardPagination:

    async def test_last_starts_from_the_oldest(self, engine, persistence, clock, book_club):
        messages = await _post(persistence, clock, 7)
        ids = [m.id for m in messages]

        tail = await engine.paginate(BOOK_CLUB_ID, last=3)

        assert _ids(tail) == [ids[2], ids[1], ids[0]]
        assert tail.page_info.has_previous_page is True
        assert tail.page_info.has_next_page is False

        newer = await engine.paginate(BOOK_CLUB_ID, last=3, before=tail.page_info.start_cursor)

        assert _ids(newer) == [ids[5], ids[4], ids[3]]
        assert newer.page_info.has_previous_page is True
        assert newer.page_info.has_next_page is True

        head = await engine.paginate(BOOK_CLUB_ID, last=3, before=newer.page_info.start_cursor)

        assert _ids(head) == [ids[6]]
        assert head.page_info.has_previous_page is False


# =============================================================================
# Cursor stability
# =============================================================================


class TestCursorStability:

    async def test_inserts_do_not_move_existing_cursors(self, engine, persistence, clock, book_club):
        await _post(persistence, clock, 7)
        page1 = await engine.paginate(BOOK_CLUB_ID, first=5)
        before_insert = {edge.node.id: edge.cursor for edge in page1.edges}

        await _post(persistence, clock, 3)

        page2 = await engine.paginate(BOOK_CLUB_ID, first=5, after=page1.page_info.end_cursor)
        assert len(page2.edges) == 2
        assert page2.page_info.has_previous_page is True

        everything = await engine.paginate(BOOK_CLUB_ID, first=20)
        for edge in everything.edges:
            if edge.node.id in before_insert:
                assert edge.cursor == before_insert[edge.node.id]
            assert edge.cursor == encode_cursor(edge.node)

    async def test_cursor_of_deleted_message_still_anchors(self, engine, persistence, clock, book_club):
        messages = await _post(persistence, clock, 5)
        anchor = encode_cursor(messages[2])

        await persistence.destroy(EntityKind.MESSAGE, messages[2].id)
        page = await engine.paginate(BOOK_CLUB_ID, first=5, after=anchor)

        assert _ids(page) == [messages[1].id, messages[0].id]
