"""
Provider Service
================

Purpose
-------
Durable writes, cache-aside reads and cache invalidation for providers, the
top tier of the catalog.

Domain
------
- Provider creation, rename and deletion
- Lookups by id or slug (with the provider's topics) and the full listing
- ``topic_count`` maintenance, invoked explicitly by topic lifecycle
  orchestration and never self-triggered

Invalidation
------------
Every mutation evicts the providers and topics families after its
transaction commits (topic reads embed provider context).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from src.core.cache.keys import EntityKind
from src.core.logging.logger import get_logger
from src.database.models import Provider
from src.modules.catalog.schemas import ProviderRecord
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import NotFoundError, ValidationError
from src.utils.slug import generate_slug

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.cache.keys import CacheKeys
    from src.core.cache.service import CacheAsideStore
    from src.core.database.service import DatabaseService


class ProviderRepository(BaseRepository[Provider]):
    """Repository for the Provider model."""

    async def find_by_slug(
        self, session: AsyncSession, provider_slug: str, with_topics: bool = False
    ) -> Optional[Provider]:
        return await self.find_one_where(
            session,
            Provider.provider_slug == provider_slug,
            eager_load=[Provider.topics] if with_topics else None,
        )


class ProviderService(BaseService):
    """
    Service for the provider tier of the catalog.

    Public Methods
    --------------
    - create() / update() / delete()
    - list_all() -> newest first, without topics
    - get_by_id() / get_by_slug() -> with topics, or None
    - require_by_slug() -> like get_by_slug but raises NotFoundError
    - increment_topic_count() / decrement_topic_count()
    """

    def __init__(
        self,
        db: DatabaseService,
        cache: CacheAsideStore,
        keys: CacheKeys,
        logger: Logger,
        ttl_seconds: int = 86400,
    ) -> None:
        super().__init__(db, cache, keys, logger, ttl_seconds)
        self._repo = ProviderRepository(
            Provider, get_logger(f"{__name__}.ProviderRepository")
        )

    # ========================================================================
    # WRITES
    # ========================================================================

    async def create(self, name: str) -> ProviderRecord:
        name = self.validate_required_str(name, "provider")
        provider_slug = self._slug_for(name)

        async with self.db.get_transaction() as session:
            provider = self._repo.add(
                session,
                Provider(provider=name, provider_slug=provider_slug, topic_count=0),
            )
            await self._repo.flush(session)
            record = ProviderRecord.from_model(provider)

        await self.cache.invalidate_entity(EntityKind.PROVIDER)
        self.log_operation("create_provider", provider_id=record.id, provider_slug=provider_slug)
        return record

    async def update(self, provider_id: str, name: str) -> ProviderRecord:
        """Rename a provider; the slug follows the new name."""
        name = self.validate_required_str(name, "provider")

        async with self.db.get_transaction() as session:
            provider = await self._repo.get(session, provider_id, for_update=True)
            if provider is None:
                raise NotFoundError("Provider", provider_id)

            provider.provider = name
            provider.provider_slug = self._slug_for(name)
            await self._repo.flush(session)
            record = ProviderRecord.from_model(provider)

        await self.cache.invalidate_entity(EntityKind.PROVIDER)
        self.log_operation("update_provider", provider_id=provider_id)
        return record

    async def delete(self, provider_id: str) -> ProviderRecord:
        async with self.db.get_transaction() as session:
            provider = await self._repo.get(session, provider_id, for_update=True)
            if provider is None:
                raise NotFoundError("Provider", provider_id)
            record = ProviderRecord.from_model(provider)
            await self._repo.delete(session, provider)

        await self.cache.invalidate_entity(EntityKind.PROVIDER)
        self.log_operation("delete_provider", provider_id=provider_id)
        return record

    async def increment_topic_count(self, provider_id: str) -> None:
        await self._adjust_topic_count(provider_id, 1)

    async def decrement_topic_count(self, provider_id: str) -> None:
        await self._adjust_topic_count(provider_id, -1)

    async def _adjust_topic_count(self, provider_id: str, delta: int) -> None:
        async with self.db.get_transaction() as session:
            matched = await self._repo.update_where(
                session,
                {"topic_count": Provider.topic_count + delta},
                Provider.id == provider_id,
            )
            if matched == 0:
                raise NotFoundError("Provider", provider_id)

        await self.cache.invalidate_entity(EntityKind.PROVIDER)
        self.log.info(
            "Provider topic_count adjusted",
            extra={"provider_id": provider_id, "delta": delta},
        )

    # ========================================================================
    # READS
    # ========================================================================

    async def list_all(self) -> List[ProviderRecord]:
        payload = await self.cache_aside(self.keys.providers_all(), self._load_all)
        return [ProviderRecord.from_dict(item) for item in payload or ()]

    async def get_by_id(self, provider_id: str) -> Optional[ProviderRecord]:
        payload = await self.cache_aside(
            self.keys.provider_by_id(provider_id),
            lambda: self._load_one(Provider.id == provider_id),
        )
        return ProviderRecord.from_dict(payload) if payload else None

    async def get_by_slug(self, provider_slug: str) -> Optional[ProviderRecord]:
        payload = await self.cache_aside(
            self.keys.provider_by_slug(provider_slug),
            lambda: self._load_one(Provider.provider_slug == provider_slug),
        )
        return ProviderRecord.from_dict(payload) if payload else None

    async def require_by_slug(self, provider_slug: str) -> ProviderRecord:
        provider = await self.get_by_slug(provider_slug)
        if provider is None:
            raise NotFoundError("Provider", provider_slug)
        return provider

    async def _load_all(self) -> List[Dict[str, Any]]:
        async with self.db.get_session() as session:
            providers = await self._repo.find_many_where(
                session,
                order_by=[Provider.created_at.desc(), Provider.id],
            )
            return [ProviderRecord.from_model(p).to_dict() for p in providers]

    async def _load_one(self, condition: Any) -> Optional[Dict[str, Any]]:
        async with self.db.get_session() as session:
            provider = await self._repo.find_one_where(
                session, condition, eager_load=[Provider.topics]
            )
            if provider is None:
                return None
            return ProviderRecord.from_model(provider, include_topics=True).to_dict()

    @staticmethod
    def _slug_for(name: str) -> str:
        provider_slug = generate_slug(name)
        if not provider_slug:
            raise ValidationError("provider", "provider name must contain letters or digits")
        return provider_slug
