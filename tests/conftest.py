"""
Pytest Configuration and Fixtures for the Cortex Catalog Tests
===============================================================

Purpose
-------
Centralized fixtures for the Cortex test suite: an in-memory durable store,
a fake key-value client, a mocked HTTP transport for the external auth and
subscription services, and the component graph wired on top of them.

Responsibilities
----------------
- SQLite (aiosqlite) ``DatabaseService`` with a fresh schema per test
- ``InMemoryRedis``: the coroutine surface ``RedisService`` consumes, with a
  switch that makes every call fail like an unreachable server
- ``httpx.MockTransport`` standing in for the auth and subscription services
- ``ServiceContainer`` built around the fixtures above
- Testcontainers for PostgreSQL and Redis (skipped without Docker)

Non-Responsibilities
--------------------
- Test implementation (delegated to test files)
- Production configuration (test-specific only)

Architecture Notes
------------------
- Unit tests use fakes and mocks (fast, isolated)
- Integration tests use the in-memory store, or real containers when the
  ``postgres_database`` / ``redis_container`` fixtures are requested
- Every database fixture provides a clean slate per test
"""

from __future__ import annotations

import fnmatch
import json
import os
from typing import Any, AsyncGenerator, Callable, Dict, Generator, List, Optional, Set

import httpx
import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

from src.core.cache.keys import CacheKeys
from src.core.cache.service import CacheAsideStore
from src.core.config.config import Config
from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.core.redis.service import RedisService
from src.core.services.container import ServiceContainer

logger = get_logger(__name__)

AUTH_URL = "http://auth.test"
SUBSCRIPTION_URL = "http://subscriptions.test"
ADMIN_EMAIL = "admin@cortex.test"

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["ENVIRONMENT"] = "testing"
    os.environ["LOG_LEVEL"] = "DEBUG"
    Config.load()


# ============================================================================
# FAKES
# ============================================================================


class InMemoryRedis:
    """
    Dict-backed stand-in for ``redis.asyncio.Redis`` (decode_responses=True).

    Implements only what ``RedisService`` calls. Set ``fail = True`` to make
    every call raise ``ConnectionError`` as an unreachable server would.
    """

    def __init__(self) -> None:
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.fail = False
        self.closed = False
        self.delete_calls: List[tuple] = []

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("Connection refused")

    async def get(self, key: str) -> Optional[str]:
        self._check()
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self._check()
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        self.delete_calls.append(keys)
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                self.ttls.pop(key, None)
                removed += 1
        return removed

    async def scan_iter(self, match: str = "*", count: Optional[int] = None):
        self._check()
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        self.closed = True

    def seed(self, key: str, value: Any) -> None:
        self.store[key] = json.dumps(value)


class FakeUpstream:
    """
    Programmable auth and subscription services behind ``httpx.MockTransport``.

    - ``users``: access token -> user payload returned by the profile endpoint
    - ``premium``: (user_id, topic_id) pairs holding a subscription
    - ``subscription_status``: force a non-2xx status from the status endpoint
    """

    def __init__(self) -> None:
        self.users: Dict[str, Dict[str, Any]] = {}
        self.premium: Set[tuple] = set()
        self.subscription_status = 200
        self.requests: List[httpx.Request] = []

    def add_user(
        self,
        token: str,
        user_id: str,
        email: str = "learner@cortex.test",
        is_active: bool = True,
    ) -> None:
        self.users[token] = {
            "id": user_id,
            "fullname": "Test Learner",
            "email": email,
            "isActive": is_active,
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.path == "/api/auth/profile":
            user = self.users.get(request.headers.get("Authorization", ""))
            if user is None:
                return httpx.Response(401, json={"msg": "Invalid token"})
            return httpx.Response(200, json={"data": {"user": user}})

        if request.url.path == "/api/premium/status":
            if self.subscription_status != 200:
                return httpx.Response(self.subscription_status, json={"msg": "unavailable"})
            body = json.loads(request.content or b"{}")
            is_premium = (body.get("user_id"), body.get("topic_id")) in self.premium
            return httpx.Response(200, json={"data": {"is_premium": is_premium}})

        return httpx.Response(404, json={"msg": "not found"})

    def calls_to(self, path: str) -> int:
        return sum(1 for request in self.requests if request.url.path == path)


# ============================================================================
# INFRASTRUCTURE FIXTURES
# ============================================================================


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[DatabaseService, None]:
    """
    In-memory SQLite database with the full schema.

    Scope: function (fresh database per test)
    Uses: Integration tests that need a durable store
    """
    db = DatabaseService("sqlite+aiosqlite:///:memory:")
    await db.initialize()
    await db.create_tables()

    yield db

    await db.shutdown()


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    """
    Dict-backed Redis client.

    Scope: function
    Uses: Tests that inspect or break the cache
    """
    return InMemoryRedis()


@pytest.fixture
def redis_service(fake_redis: InMemoryRedis) -> RedisService:
    return RedisService(client=fake_redis)


@pytest.fixture
def cache_keys() -> CacheKeys:
    return CacheKeys("test")


@pytest.fixture
def cache_store(redis_service: RedisService, cache_keys: CacheKeys) -> CacheAsideStore:
    return CacheAsideStore(redis_service, cache_keys)


@pytest.fixture
def upstream() -> FakeUpstream:
    """
    Programmable external services.

    Scope: function
    Uses: Tests that authenticate callers or grant subscriptions
    """
    return FakeUpstream()


@pytest_asyncio.fixture
async def http_client(upstream: FakeUpstream) -> AsyncGenerator[httpx.AsyncClient, None]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
    yield client
    await client.aclose()


# ============================================================================
# COMPONENT GRAPH FIXTURES
# ============================================================================


@pytest_asyncio.fixture
async def container(
    database: DatabaseService,
    redis_service: RedisService,
    http_client: httpx.AsyncClient,
    cache_keys: CacheKeys,
) -> AsyncGenerator[ServiceContainer, None]:
    """
    Fully wired component graph over the in-memory fixtures.

    Scope: function
    Uses: Integration tests of services, bookmarks and handlers
    """
    services = ServiceContainer(
        db=database,
        redis=redis_service,
        http=http_client,
        keys=cache_keys,
        auth_service_url=AUTH_URL,
        subscription_service_url=SUBSCRIPTION_URL,
        service_name="cortex-test",
        admin_email=ADMIN_EMAIL,
        fetch_limit=1,
        max_limit=50,
    )
    await services.startup()

    yield services

    await services.shutdown()


@pytest.fixture
def handlers(container: ServiceContainer):
    return container.handlers


@pytest.fixture
def make_options() -> Callable[..., List[Dict[str, Any]]]:
    """Factory for a valid option list."""

    def _make(count: int = 4) -> List[Dict[str, Any]]:
        return [
            {"option_no": number, "option_text": f"Option {number}"}
            for number in range(1, count + 1)
        ]

    return _make


@pytest_asyncio.fixture
async def algebra_topic(handlers):
    """
    Provider "Khan Academy" with one empty topic "Algebra".

    Scope: function
    Uses: Tests that need a topic to place questions in
    """
    await handlers.create_provider("Khan Academy")
    return await handlers.create_topic("Algebra", "Khan Academy", ["math"])


@pytest.fixture
def add_question(handlers, make_options):
    """
    Factory creating a question in a topic through the handlers.

    Usage:
        question = await add_question("Algebra", "What is 2 + 2?", seq_no=1)
    """

    async def _add(topic_name: str, text: str, **kwargs: Any):
        return await handlers.create_question(
            topic_name=topic_name,
            question=text,
            answer=kwargs.pop("answer", 1),
            options=kwargs.pop("options", make_options()),
            difficulty=kwargs.pop("difficulty", "easy"),
            **kwargs,
        )

    return _add


# ============================================================================
# TESTCONTAINERS FIXTURES (Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[Any, None, None]:
    """
    Start PostgreSQL testcontainer for integration tests.

    Scope: session (container persists across all tests)
    Uses: Tests that need real database semantics; skipped without Docker
    """
    from testcontainers.postgres import PostgresContainer

    logger.info("Starting PostgreSQL testcontainer...")
    container = PostgresContainer(image="postgres:17-alpine", driver="asyncpg")
    try:
        container.start()
    except Exception as exc:  # docker missing or unreachable
        pytest.skip(f"PostgreSQL testcontainer unavailable: {exc}")

    logger.info("PostgreSQL testcontainer started: %s", container.get_connection_url())

    yield container

    logger.info("Stopping PostgreSQL testcontainer...")
    container.stop()


@pytest.fixture(scope="session")
def redis_container() -> Generator[Any, None, None]:
    """
    Start Redis testcontainer for integration tests.

    Scope: session (container persists across all tests)
    Uses: Tests that need a real Redis server; skipped without Docker
    """
    from testcontainers.redis import RedisContainer

    logger.info("Starting Redis testcontainer...")
    container = RedisContainer(image="redis:7-alpine")
    try:
        container.start()
    except Exception as exc:  # docker missing or unreachable
        pytest.skip(f"Redis testcontainer unavailable: {exc}")

    logger.info(
        "Redis testcontainer started: %s:%s",
        container.get_container_host_ip(),
        container.get_exposed_port(6379),
    )

    yield container

    logger.info("Stopping Redis testcontainer...")
    container.stop()


@pytest_asyncio.fixture
async def postgres_database(postgres_container) -> AsyncGenerator[DatabaseService, None]:
    """
    ``DatabaseService`` against the PostgreSQL testcontainer.

    Scope: function (schema dropped and recreated per test)
    """
    db = DatabaseService(postgres_container.get_connection_url(), pool_size=5)
    await db.initialize()
    await db.drop_tables()
    await db.create_tables()

    yield db

    await db.drop_tables()
    await db.shutdown()


@pytest_asyncio.fixture
async def real_redis(redis_container) -> AsyncGenerator[RedisService, None]:
    """
    ``RedisService`` against the Redis testcontainer, flushed per test.

    Scope: function
    """
    host = redis_container.get_container_host_ip()
    port = redis_container.get_exposed_port(6379)
    service = RedisService(f"redis://{host}:{port}/0")
    await service.initialize()
    await service.client().flushdb()

    yield service

    await service.shutdown()
