"""
Topic Service
=============

Purpose
-------
Durable writes, cache-aside reads and cache invalidation for topics, the
middle tier of the catalog.

Domain
------
- Topic creation, update (name, owning provider, tags) and deletion
- Lookups by id or slug and listings (all, by provider id, by provider slug),
  each read carrying a snapshot of the owning provider
- ``qn_count`` maintenance, invoked explicitly by question lifecycle
  orchestration; the count is never recomputed by scanning questions

Invalidation
------------
Every mutation (counter changes included) evicts the topics, providers and
questions families: provider reads embed their topics and question reads
embed a topic snapshot carrying ``qn_count``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from sqlalchemy import select

from src.core.cache.keys import EntityKind
from src.core.logging.logger import get_logger
from src.database.models import Provider, Topic
from src.modules.catalog.schemas import TopicRecord
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import NotFoundError, ValidationError
from src.utils.slug import generate_slug

if TYPE_CHECKING:
    from logging import Logger

    from src.core.cache.keys import CacheKeys
    from src.core.cache.service import CacheAsideStore
    from src.core.database.service import DatabaseService


UNSET: Any = object()


def clean_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""
    return list(dict.fromkeys(tag.strip() for tag in tags or () if tag and tag.strip()))


class TopicService(BaseService):
    """
    Service for the topic tier of the catalog.

    Public Methods
    --------------
    - create() / update() / delete()
    - list_all() / list_by_provider_id() / list_by_provider_slug()
    - get_by_id() / get_by_slug() -> record with provider snapshot, or None
    - require_by_id() / require_by_slug() -> raise NotFoundError instead
    - increment_question_count() / decrement_question_count()
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
        self._repo = BaseRepository(Topic, get_logger(f"{__name__}.TopicRepository"))
        self._providers = BaseRepository(
            Provider, get_logger(f"{__name__}.ProviderRepository")
        )

    # ========================================================================
    # WRITES
    # ========================================================================

    async def create(
        self,
        name: str,
        provider_id: str,
        tags: Optional[Iterable[str]] = None,
    ) -> TopicRecord:
        """
        Create a topic under ``provider_id``.

        The provider's ``topic_count`` is not touched here; the caller
        increments it once the topic exists.
        """
        name = self.validate_required_str(name, "topic")
        topic_slug = self._slug_for(name)

        async with self.db.get_transaction() as session:
            provider = await self._providers.get(session, provider_id)
            if provider is None:
                raise NotFoundError("Provider", provider_id)

            topic = Topic(
                topic=name,
                topic_slug=topic_slug,
                qn_count=0,
                tags=clean_tags(tags),
            )
            topic.provider = provider
            self._repo.add(session, topic)
            await self._repo.flush(session)
            record = TopicRecord.from_model(topic, include_provider=True)

        await self.cache.invalidate_entity(EntityKind.TOPIC)
        self.log_operation(
            "create_topic", topic_id=record.id, provider_id=provider_id, topic_slug=topic_slug
        )
        return record

    async def update(
        self,
        topic_id: str,
        name: Optional[str] = None,
        provider_id: Optional[str] = None,
        tags: Any = UNSET,
    ) -> TopicRecord:
        """
        Apply the given changes; arguments left as None/unset are untouched.

        Moving a topic to another provider does not adjust either
        provider's ``topic_count``; the caller owns counter orchestration.
        """
        async with self.db.get_transaction() as session:
            topic = await self._repo.get(session, topic_id, for_update=True)
            if topic is None:
                raise NotFoundError("Topic", topic_id)

            if name is not None:
                topic.topic = self.validate_required_str(name, "topic")
                topic.topic_slug = self._slug_for(topic.topic)

            if provider_id is not None and provider_id != topic.provider_id:
                provider = await self._providers.get(session, provider_id)
                if provider is None:
                    raise NotFoundError("Provider", provider_id)
                topic.provider = provider

            if tags is not UNSET:
                topic.tags = clean_tags(tags)

            await self._repo.flush(session)
            record = TopicRecord.from_model(topic, include_provider=True)

        await self.cache.invalidate_entity(EntityKind.TOPIC)
        self.log_operation("update_topic", topic_id=topic_id)
        return record

    async def delete(self, topic_id: str) -> TopicRecord:
        async with self.db.get_transaction() as session:
            topic = await self._repo.get(session, topic_id, for_update=True)
            if topic is None:
                raise NotFoundError("Topic", topic_id)
            record = TopicRecord.from_model(topic, include_provider=True)
            await self._repo.delete(session, topic)

        await self.cache.invalidate_entity(EntityKind.TOPIC)
        self.log_operation("delete_topic", topic_id=topic_id, provider_id=record.provider_id)
        return record

    async def increment_question_count(self, topic_id: str) -> None:
        await self._adjust_question_count(topic_id, 1)

    async def decrement_question_count(self, topic_id: str) -> None:
        await self._adjust_question_count(topic_id, -1)

    async def _adjust_question_count(self, topic_id: str, delta: int) -> None:
        async with self.db.get_transaction() as session:
            matched = await self._repo.update_where(
                session,
                {"qn_count": Topic.qn_count + delta},
                Topic.id == topic_id,
            )
            if matched == 0:
                raise NotFoundError("Topic", topic_id)

        await self.cache.invalidate_entity(EntityKind.TOPIC)
        self.log.info(
            "Topic qn_count adjusted",
            extra={"topic_id": topic_id, "delta": delta},
        )

    # ========================================================================
    # READS
    # ========================================================================

    async def list_all(self) -> List[TopicRecord]:
        payload = await self.cache_aside(
            self.keys.topics_all(), lambda: self._load_many()
        )
        return [TopicRecord.from_dict(item) for item in payload or ()]

    async def list_by_provider_id(self, provider_id: str) -> List[TopicRecord]:
        payload = await self.cache_aside(
            self.keys.topics_by_provider(provider_id),
            lambda: self._load_many(Topic.provider_id == provider_id),
        )
        return [TopicRecord.from_dict(item) for item in payload or ()]

    async def list_by_provider_slug(self, provider_slug: str) -> List[TopicRecord]:
        """Topics of the provider with ``provider_slug``; empty if it does not exist."""
        owner = select(Provider.id).where(Provider.provider_slug == provider_slug)
        payload = await self.cache_aside(
            self.keys.topics_by_provider_slug(provider_slug),
            lambda: self._load_many(Topic.provider_id.in_(owner)),
        )
        return [TopicRecord.from_dict(item) for item in payload or ()]

    async def get_by_id(self, topic_id: str) -> Optional[TopicRecord]:
        payload = await self.cache_aside(
            self.keys.topic_by_id(topic_id),
            lambda: self._load_one(Topic.id == topic_id),
        )
        return TopicRecord.from_dict(payload) if payload else None

    async def get_by_slug(self, topic_slug: str) -> Optional[TopicRecord]:
        payload = await self.cache_aside(
            self.keys.topic_by_slug(topic_slug),
            lambda: self._load_one(Topic.topic_slug == topic_slug),
        )
        return TopicRecord.from_dict(payload) if payload else None

    async def require_by_id(self, topic_id: str) -> TopicRecord:
        topic = await self.get_by_id(topic_id)
        if topic is None:
            raise NotFoundError("Topic", topic_id)
        return topic

    async def require_by_slug(self, topic_slug: str) -> TopicRecord:
        topic = await self.get_by_slug(topic_slug)
        if topic is None:
            raise NotFoundError("Topic", topic_slug)
        return topic

    async def _load_many(self, *conditions: Any) -> List[Dict[str, Any]]:
        async with self.db.get_session() as session:
            topics = await self._repo.find_many_where(
                session,
                *conditions,
                order_by=[Topic.created_at.desc(), Topic.id],
            )
            return [
                TopicRecord.from_model(topic, include_provider=True).to_dict()
                for topic in topics
            ]

    async def _load_one(self, condition: Any) -> Optional[Dict[str, Any]]:
        async with self.db.get_session() as session:
            topic = await self._repo.find_one_where(session, condition)
            if topic is None:
                return None
            return TopicRecord.from_model(topic, include_provider=True).to_dict()

    @staticmethod
    def _slug_for(name: str) -> str:
        topic_slug = generate_slug(name)
        if not topic_slug:
            raise ValidationError("topic", "topic name must contain letters or digits")
        return topic_slug
