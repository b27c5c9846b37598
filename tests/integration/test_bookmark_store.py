"""
Integration Tests for the Bookmark Store
========================================

Test Coverage
-------------
- Lazy profile creation and caching
- Toggle state machine and position validation
- Clearing a topic
- Legacy profile migration (once, persisted, idempotent)
- Bookmarked question pages through the handlers
"""

import pytest
from sqlalchemy import select

from src.database.models import Profile
from src.modules.bookmarks.service import INVALID_SEQ_NO
from src.modules.shared.exceptions import NotFoundError, ValidationError


@pytest.fixture
async def three_questions(algebra_topic, add_question):
    for text in ("Q1?", "Q2?", "Q3?"):
        await add_question("Algebra", text)
    return algebra_topic


async def stored_profile(database, user_id):
    async with database.get_session() as session:
        result = await session.execute(select(Profile).where(Profile.user_id == user_id))
        return result.scalar_one_or_none()


# ============================================================================
# PROFILES
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestProfiles:
    """Profiles are created on first access."""

    async def test_first_access_creates_profile(self, container, database):
        # Act
        profile = await container.bookmarks.get_or_create("u1")

        # Assert
        assert profile.user_id == "u1"
        assert profile.bookmarks == ()
        assert (await stored_profile(database, "u1")) is not None

    async def test_second_access_reuses_profile(self, container, fake_redis, cache_keys):
        first = await container.bookmarks.get_or_create("u1")
        fake_redis.store.clear()

        second = await container.bookmarks.get_or_create("u1")

        assert second.id == first.id
        assert cache_keys.profile("u1") in fake_redis.store

    async def test_profile_ttl(self, container, fake_redis, cache_keys):
        await container.bookmarks.get_or_create("u1")

        assert fake_redis.ttls[cache_keys.profile("u1")] == 300


# ============================================================================
# TOGGLE
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestToggle:
    """Toggle flips one position and reports the new state."""

    async def test_toggle_on_then_off(self, container, three_questions):
        bookmarks = container.bookmarks

        assert await bookmarks.toggle("u1", "algebra", 2) is True
        assert await bookmarks.list("u1", "algebra") == [2]
        assert await bookmarks.is_bookmarked("u1", "algebra", 2) is True

        assert await bookmarks.toggle("u1", "algebra", 2) is False
        assert await bookmarks.list("u1", "algebra") == []

    async def test_positions_keep_insertion_order(self, container, three_questions):
        for seq_no in (3, 1, 2):
            await container.bookmarks.toggle("u1", "algebra", seq_no)

        assert await container.bookmarks.list("u1", "algebra") == [3, 1, 2]

    async def test_empty_entries_are_pruned(self, container, database, three_questions):
        await container.bookmarks.toggle("u1", "algebra", 1)
        await container.bookmarks.toggle("u1", "algebra", 1)

        profile = await stored_profile(database, "u1")

        assert profile.bookmarks == []

    async def test_users_are_isolated(self, container, three_questions):
        await container.bookmarks.toggle("u1", "algebra", 1)

        assert await container.bookmarks.list("u2", "algebra") == []

    @pytest.mark.parametrize("seq_no", [0, 4, -1, True])
    async def test_out_of_range_position(self, container, three_questions, seq_no):
        with pytest.raises(ValidationError) as exc_info:
            await container.bookmarks.toggle("u1", "algebra", seq_no)

        assert exc_info.value.validation_message == INVALID_SEQ_NO

    async def test_unknown_topic(self, container, three_questions):
        with pytest.raises(NotFoundError):
            await container.bookmarks.toggle("u1", "calculus", 1)

    async def test_toggle_invalidates_cached_profile(self, container, three_questions):
        await container.bookmarks.list("u1", "algebra")  # warm cache

        await container.bookmarks.toggle("u1", "algebra", 3)

        assert await container.bookmarks.list("u1", "algebra") == [3]


# ============================================================================
# CLEAR
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestClear:
    """Clearing removes one topic's bookmarks only."""

    async def test_clear_topic(self, container, handlers, three_questions, add_question):
        # Arrange
        await handlers.create_topic("Geometry", "Khan Academy")
        await add_question("Geometry", "G1?")
        await container.bookmarks.toggle("u1", "algebra", 1)
        await container.bookmarks.toggle("u1", "geometry", 1)

        # Act
        await container.bookmarks.clear("u1", "algebra")

        # Assert
        assert await container.bookmarks.list("u1", "algebra") == []
        assert await container.bookmarks.list("u1", "geometry") == [1]


# ============================================================================
# LEGACY MIGRATION
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestLegacyMigration:
    """Legacy-shaped profiles are rewritten on first load."""

    @pytest.fixture
    async def legacy_profile(self, database, three_questions):
        async with database.get_transaction() as session:
            session.add(
                Profile(
                    user_id="legacy",
                    bookmarks=[],
                    topics=[
                        {"topic_id": three_questions.id, "bookmarked": [2, 1, 2]},
                        {"topic_id": three_questions.id, "bookmarked": [3]},
                    ],
                )
            )
        return three_questions

    async def test_migrated_on_first_read(self, container, database, legacy_profile):
        # Act
        seq_nos = await container.bookmarks.list("legacy", "algebra")

        # Assert
        assert seq_nos == [2, 1, 3]
        stored = await stored_profile(database, "legacy")
        assert stored.bookmarks == [
            {"topic_id": legacy_profile.id, "bookmarked_seq_nos": [2, 1, 3]}
        ]
        assert stored.topics is None

    async def test_migration_runs_once(self, container, fake_redis, legacy_profile):
        # Arrange
        await container.bookmarks.list("legacy", "algebra")
        await container.bookmarks.toggle("legacy", "algebra", 2)
        fake_redis.store.clear()

        # Act - a fresh load must not re-apply legacy data
        seq_nos = await container.bookmarks.list("legacy", "algebra")

        # Assert
        assert seq_nos == [1, 3]

    async def test_toggle_migrates_before_mutating(self, container, legacy_profile):
        assert await container.bookmarks.toggle("legacy", "algebra", 1) is False

        assert await container.bookmarks.list("legacy", "algebra") == [2, 3]


# ============================================================================
# BOOKMARKED PAGES
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestBookmarkedPages:
    """Handlers page through bookmarked questions."""

    async def test_page_over_bookmarks(self, container, handlers, three_questions):
        # Arrange
        await container.bookmarks.toggle("u1", "algebra", 3)
        await container.bookmarks.toggle("u1", "algebra", 1)

        # Act
        result = await handlers.get_bookmarked_questions("u1", "algebra", 1, limit=10)

        # Assert
        assert [q.seq_no for q in result.page.questions] == [1, 3]
        assert result.bookmarked_seq_nos == (3, 1)
        assert result.total_bookmarked == 2

    async def test_paging_through_bookmarks(self, container, handlers, three_questions):
        for seq_no in (1, 2, 3):
            await container.bookmarks.toggle("u1", "algebra", seq_no)

        second = await handlers.get_bookmarked_questions("u1", "algebra", 2)

        assert [q.seq_no for q in second.page.questions] == [2]
        assert second.total_bookmarked == 3

    async def test_no_bookmarks(self, handlers, three_questions):
        with pytest.raises(NotFoundError) as exc_info:
            await handlers.get_bookmarked_questions("u1", "algebra", 1)

        assert exc_info.value.error_code == "BOOKMARKS_NOT_FOUND"

    async def test_premium_bookmarks_hidden(self, container, handlers, three_questions, add_question):
        await add_question("Algebra", "Premium?", is_premium=True)
        await container.bookmarks.toggle("u1", "algebra", 1)
        await container.bookmarks.toggle("u1", "algebra", 4)

        result = await handlers.get_bookmarked_questions("u1", "algebra", 1, limit=10)

        assert [q.seq_no for q in result.page.questions] == [1]
        assert result.total_bookmarked == 2
