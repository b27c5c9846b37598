"""
Integration Tests Against Real Infrastructure
=============================================

Purpose
-------
Run the parts whose behaviour depends on the backend (SCAN-based pattern
invalidation, bulk range updates, row locks) against PostgreSQL and Redis
testcontainers. Every test here is skipped when Docker is unavailable.

Test Coverage
-------------
- RedisService primitives and CacheAsideStore pattern invalidation
- Sequence shift on PostgreSQL
- Bookmark toggle on PostgreSQL (SELECT ... FOR UPDATE path)
"""

import httpx
import pytest

from src.core.cache.keys import CacheKeys, EntityKind
from src.core.cache.service import CacheAsideStore
from src.core.services.container import ServiceContainer


# ============================================================================
# REDIS
# ============================================================================


@pytest.mark.integration
@pytest.mark.cache
class TestRealRedis:
    """RedisService and CacheAsideStore on a real server."""

    async def test_set_get_with_ttl(self, real_redis):
        await real_redis.set("cortex:topics:all", "[]", 30)

        assert await real_redis.get("cortex:topics:all") == "[]"
        assert 0 < await real_redis.client().ttl("cortex:topics:all") <= 30

    async def test_scan_and_delete(self, real_redis):
        # Arrange
        for index in range(1, 4):
            await real_redis.set(f"cortex:questions:topic:algebra:index:{index}:limit:1", "{}", 30)
        await real_redis.set("cortex:topics:all", "[]", 30)

        # Act
        keys = await real_redis.scan_keys("cortex:questions:*")
        deleted = await real_redis.delete(*keys)

        # Assert
        assert deleted == 3
        assert await real_redis.get("cortex:topics:all") == "[]"

    async def test_family_invalidation(self, real_redis):
        # Arrange
        keys = CacheKeys("cortex")
        store = CacheAsideStore(real_redis, keys)
        await store.write(keys.topics_all(), [], 30)
        await store.write(keys.provider_by_slug("khan"), {}, 30)
        await store.write(keys.question_by_id("q1"), {}, 30)
        await store.write(keys.profile("u1"), {}, 30)

        # Act
        await store.invalidate_entity(EntityKind.PROVIDER)

        # Assert
        assert await store.read(keys.topics_all()) is None
        assert await store.read(keys.provider_by_slug("khan")) is None
        assert await store.read(keys.question_by_id("q1")) is None
        assert await store.read(keys.profile("u1")) == {}


# ============================================================================
# POSTGRESQL
# ============================================================================


@pytest.fixture
async def pg_container(postgres_database, redis_service, cache_keys):
    """Component graph over PostgreSQL with the in-memory cache."""
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json={"data": {"is_premium": False}})
        )
    )
    services = ServiceContainer(db=postgres_database, redis=redis_service, http=http, keys=cache_keys)
    await services.startup()

    yield services

    await services.shutdown()


@pytest.mark.integration
@pytest.mark.database
class TestPostgres:
    """Backend-sensitive paths on PostgreSQL."""

    async def test_insert_shift(self, pg_container, make_options):
        # Arrange
        handlers = pg_container.handlers
        await handlers.create_provider("Khan Academy")
        await handlers.create_topic("Algebra", "Khan Academy")
        for text in ("Q1?", "Q2?", "Q3?"):
            await handlers.create_question("Algebra", text, 1, make_options(), "easy")

        # Act
        await handlers.create_question("Algebra", "New?", 1, make_options(), "easy", seq_no=2)

        # Assert
        page = await handlers.get_questions("algebra", 1, limit=10)
        assert [(q.seq_no, q.question) for q in page.questions] == [
            (1, "Q1?"),
            (2, "New?"),
            (3, "Q2?"),
            (4, "Q3?"),
        ]
        assert page.total_count == 4

    async def test_bookmark_toggle(self, pg_container, make_options):
        handlers = pg_container.handlers
        await handlers.create_provider("Khan Academy")
        await handlers.create_topic("Algebra", "Khan Academy")
        await handlers.create_question("Algebra", "Q1?", 1, make_options(), "easy")

        assert await pg_container.bookmarks.toggle("u1", "algebra", 1) is True
        assert await pg_container.bookmarks.toggle("u1", "algebra", 1) is False
