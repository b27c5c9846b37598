"""
Service Container
=================

Purpose
-------
Explicit constructor injection for the whole Cortex component graph: one
``DatabaseService``, one ``RedisService`` and one ``httpx.AsyncClient`` are
created here and handed to every component that needs them. Nothing in the
graph is a process-wide singleton, so tests build the same graph around an
in-memory database, a fake key-value client and a mocked HTTP transport.

Responsibilities
----------------
- Read ``Config`` once (``build``) and pass plain values to constructors
- Wire cache, catalog services, sequence manager, bookmark store, premium
  gate, external clients and handlers
- Open and close the engine, the Redis pool and the HTTP client

Non-Responsibilities
--------------------
- Business logic
- Routing or transport concerns

Architecture Notes
------------------
- Construction is synchronous and performs no I/O; ``startup()`` opens
  connections, ``shutdown()`` closes them in reverse order
- Redis failing its startup health check does not fail startup: the cache
  degrades to misses
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Type, TypeVar

import httpx

from src.core.cache.keys import CacheKeys
from src.core.cache.service import CacheAsideStore
from src.core.clients.auth import AuthClient
from src.core.clients.subscription import SubscriptionClient
from src.core.config.config import Config
from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.core.redis.service import RedisService
from src.modules.bookmarks.service import BookmarkStore
from src.modules.catalog.handlers import CatalogHandlers
from src.modules.catalog.provider_service import ProviderService
from src.modules.catalog.question_service import QuestionService
from src.modules.catalog.sequence import SequenceManager
from src.modules.catalog.topic_service import TopicService
from src.modules.premium.gate import PremiumGate

if TYPE_CHECKING:
    from logging import Logger

T = TypeVar("T")


class ServiceContainer:
    """
    Owner of the Cortex component graph.

    Usage:
        container = ServiceContainer.build(Config)
        await container.startup()
        page = await container.handlers.get_questions("algebra", 1)
        await container.shutdown()
    """

    def __init__(
        self,
        *,
        db: DatabaseService,
        redis: RedisService,
        http: httpx.AsyncClient,
        keys: Optional[CacheKeys] = None,
        catalog_ttl_seconds: int = 86400,
        profile_ttl_seconds: int = 300,
        auth_service_url: str = "http://localhost:4000",
        subscription_service_url: str = "http://localhost:4000",
        service_name: str = "cortex",
        admin_email: str = "",
        fetch_limit: int = 1,
        max_limit: int = 50,
        logger: Optional[Logger] = None,
    ) -> None:
        self._logger = logger or get_logger(__name__)
        self._service_init_times: Dict[str, float] = {}
        self._started = False

        self.db = db
        self.redis = redis
        self.http = http
        self.keys = keys or CacheKeys()
        self.admin_email = admin_email

        self.cache = self._create("cache", lambda: CacheAsideStore(self.redis, self.keys))
        common = (self.db, self.cache, self.keys)

        self.providers = self._create(
            "providers",
            lambda: ProviderService(
                *common, self._logger_for(ProviderService), catalog_ttl_seconds
            ),
        )
        self.topics = self._create(
            "topics",
            lambda: TopicService(*common, self._logger_for(TopicService), catalog_ttl_seconds),
        )
        self.questions = self._create(
            "questions",
            lambda: QuestionService(
                *common,
                self._logger_for(QuestionService),
                topics=self.topics,
                ttl_seconds=catalog_ttl_seconds,
            ),
        )
        self.sequence = self._create(
            "sequence",
            lambda: SequenceManager(*common, self._logger_for(SequenceManager)),
        )
        self.bookmarks = self._create(
            "bookmarks",
            lambda: BookmarkStore(
                *common,
                self._logger_for(BookmarkStore),
                topics=self.topics,
                ttl_seconds=profile_ttl_seconds,
            ),
        )

        self.auth = AuthClient(self.http, auth_service_url)
        self.subscriptions = SubscriptionClient(
            self.http, subscription_service_url, service_name
        )
        self.premium = self._create(
            "premium",
            lambda: PremiumGate(self.subscriptions, self._logger_for(PremiumGate)),
        )
        self.handlers = self._create(
            "handlers",
            lambda: CatalogHandlers(
                providers=self.providers,
                topics=self.topics,
                questions=self.questions,
                sequence=self.sequence,
                bookmarks=self.bookmarks,
                premium=self.premium,
                logger=self._logger_for(CatalogHandlers),
                fetch_limit=fetch_limit,
                max_limit=max_limit,
            ),
        )

    @classmethod
    def build(cls, config: Type[Config] = Config) -> "ServiceContainer":
        """Construct the graph from ``Config`` without opening connections."""
        return cls(
            db=DatabaseService(
                config.DATABASE_URL,
                pool_size=config.DATABASE_POOL_SIZE,
                max_overflow=config.DATABASE_MAX_OVERFLOW,
                echo=config.DATABASE_ECHO,
            ),
            redis=RedisService(
                config.REDIS_URL,
                socket_timeout=config.REDIS_SOCKET_TIMEOUT,
                max_connections=config.REDIS_MAX_CONNECTIONS,
            ),
            http=httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_SECONDS),
            keys=CacheKeys(config.CACHE_KEY_PREFIX),
            catalog_ttl_seconds=config.CACHE_TTL_CATALOG_SECONDS,
            profile_ttl_seconds=config.CACHE_TTL_PROFILE_SECONDS,
            auth_service_url=config.AUTH_SERVICE_URL,
            subscription_service_url=config.SUBSCRIPTION_SERVICE_URL,
            service_name=config.SERVICE_NAME,
            admin_email=config.ADMIN_EMAIL,
            fetch_limit=config.QUESTION_FETCH_LIMIT,
            max_limit=config.QUESTION_MAX_LIMIT,
        )

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def startup(self) -> None:
        if self._started:
            self._logger.warning("ServiceContainer already started")
            return

        start = time.perf_counter()
        await self.db.initialize()
        await self.redis.initialize()
        self._started = True

        self._logger.info(
            "Service container started",
            extra={
                "startup_seconds": round(time.perf_counter() - start, 3),
                "component_count": len(self._service_init_times),
            },
        )

    async def shutdown(self) -> None:
        if not self._started:
            return

        self._logger.info("Shutting down service container...")
        await self.http.aclose()
        await self.redis.shutdown()
        await self.db.shutdown()
        self._started = False
        self._logger.info("Service container shut down")

    async def health_check(self) -> Dict[str, Any]:
        return {
            "started": self._started,
            "database": await self.db.health_check(),
            "cache": await self.redis.health_check(),
            "component_count": len(self._service_init_times),
        }

    # ========================================================================
    # Helpers
    # ========================================================================

    def _create(self, name: str, factory: Callable[[], T]) -> T:
        start = time.perf_counter()
        try:
            instance = factory()
        except Exception:
            self._logger.error(f"Failed to initialize {name}", exc_info=True)
            raise
        duration = time.perf_counter() - start
        self._service_init_times[name] = duration
        self._logger.debug(f"Initialized {name} in {duration:.3f}s")
        return instance

    @staticmethod
    def _logger_for(cls: type) -> Logger:
        return get_logger(f"{cls.__module__}.{cls.__name__}")
