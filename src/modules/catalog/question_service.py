"""
Question Service
================

Purpose
-------
Durable writes, cache-aside reads and pagination for questions, the bottom
tier of the catalog.

Domain
------
- Create, update and delete at a ``seq_no`` already resolved by the
  ``SequenceManager``
- Single-item lookups by id or slug, published questions only
- Pages ordered by ``seq_no``: by topic, by topic and tag intersection, and
  by a user's bookmarked positions

Visibility
----------
Only ``published`` questions are visible to read paths. The filter lives in
the queries of this service, so an unpublished question never reaches the
cache through a single-item lookup.

Pagination
----------
``index`` is 1-based: ``offset = index - 1``. ``total_count`` is computed
with the same predicate as the page (topic + published + optional tags).
Empty pages are never cached.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy import select

from src.core.cache.keys import EntityKind, canonicalize_tags
from src.core.logging.logger import get_logger
from src.database.models import Question, QuestionStatus, QuestionTag, Topic
from src.modules.catalog.schemas import QuestionPage, QuestionRecord
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import NotFoundError, ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.cache.keys import CacheKeys
    from src.core.cache.service import CacheAsideStore
    from src.core.database.service import DatabaseService
    from src.modules.catalog.topic_service import TopicService


# Columns ``update()`` may set directly; topic and tags are handled apart
UPDATABLE_FIELDS = frozenset(
    {
        "seq_no",
        "qn_slug",
        "question",
        "answer",
        "options",
        "explanation",
        "image_url",
        "difficulty",
        "status",
        "is_premium",
    }
)


def _has_page(payload: Dict[str, Any]) -> bool:
    return bool(payload.get("questions"))


class QuestionService(BaseService):
    """
    Service for the question tier of the catalog.

    Dependencies
    ------------
    - TopicService: resolves topic slugs for paginated reads

    Public Methods
    --------------
    - create() / update() / delete()
    - get_by_id() / get_by_slug() -> published only, cached
    - get_any_by_id() -> any status, uncached (admin paths)
    - list_by_index() / list_by_tags() -> cached pages
    - list_bookmarked() -> uncached page over bookmarked positions
    """

    def __init__(
        self,
        db: DatabaseService,
        cache: CacheAsideStore,
        keys: CacheKeys,
        logger: Logger,
        topics: TopicService,
        ttl_seconds: int = 86400,
    ) -> None:
        super().__init__(db, cache, keys, logger, ttl_seconds)
        self.topics = topics
        self._repo = BaseRepository(
            Question, get_logger(f"{__name__}.QuestionRepository")
        )
        self._topic_repo = BaseRepository(
            Topic, get_logger(f"{__name__}.TopicRepository")
        )

    # ========================================================================
    # WRITES
    # ========================================================================

    async def create(
        self,
        *,
        topic_id: str,
        seq_no: int,
        qn_slug: str,
        question: str,
        answer: int,
        options: Sequence[Mapping[str, Any]],
        difficulty: str,
        explanation: Optional[str] = None,
        image_url: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        status: str = QuestionStatus.PUBLISHED,
        is_premium: bool = False,
    ) -> QuestionRecord:
        """
        Insert a question at an already-placed ``seq_no``.

        The topic's ``qn_count`` is not touched here; the caller increments
        it once the question exists.
        """
        self.validate_positive_int(seq_no, "seq_no")

        async with self.db.get_transaction() as session:
            topic = await self._topic_repo.get(session, topic_id)
            if topic is None:
                raise NotFoundError("Topic", topic_id)

            model = Question(
                seq_no=seq_no,
                qn_slug=qn_slug,
                question=question,
                answer=answer,
                options=[dict(option) for option in options],
                explanation=explanation,
                image_url=image_url,
                difficulty=difficulty,
                status=status,
                is_premium=is_premium,
            )
            model.topic = topic
            model.set_tags(list(tags or ()))
            self._repo.add(session, model)
            await self._repo.flush(session)
            record = QuestionRecord.from_model(model)

        await self.cache.invalidate_entity(EntityKind.QUESTION)
        self.log_operation(
            "create_question",
            question_id=record.id,
            topic_id=topic_id,
            seq_no=seq_no,
        )
        return record

    async def update(
        self,
        question_id: str,
        values: Mapping[str, Any],
        *,
        topic_id: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> QuestionRecord:
        """
        Apply ``values`` (a subset of ``UPDATABLE_FIELDS``) to a question.

        Args:
            question_id: Question to change, any status
            values: Column changes; slug and position must already be resolved
            topic_id: Move the question to this topic
            tags: Replace the tag set

        Raises:
            NotFoundError: Question or target topic missing
            ValidationError: Unknown field in ``values``
        """
        unknown = set(values) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(sorted(unknown)[0], "field cannot be updated")

        async with self.db.get_transaction() as session:
            model = await self._repo.get(session, question_id, for_update=True)
            if model is None:
                raise NotFoundError("Question", question_id)

            if topic_id is not None and topic_id != model.topic_id:
                topic = await self._topic_repo.get(session, topic_id)
                if topic is None:
                    raise NotFoundError("Topic", topic_id)
                model.topic = topic

            for field_name, value in values.items():
                if field_name == "options":
                    value = [dict(option) for option in value]
                setattr(model, field_name, value)

            if tags is not None:
                model.set_tags(list(tags))

            await self._repo.flush(session)
            record = QuestionRecord.from_model(model)

        await self.cache.invalidate_entity(EntityKind.QUESTION)
        self.log_operation(
            "update_question", question_id=question_id, fields=sorted(values)
        )
        return record

    async def delete(self, question_id: str) -> QuestionRecord:
        """Delete a question of any status and return its last state."""
        async with self.db.get_transaction() as session:
            model = await self._repo.get(session, question_id, for_update=True)
            if model is None:
                raise NotFoundError("Question", question_id)
            record = QuestionRecord.from_model(model)
            await self._repo.delete(session, model)

        await self.cache.invalidate_entity(EntityKind.QUESTION)
        self.log_operation(
            "delete_question", question_id=question_id, topic_id=record.topic_id
        )
        return record

    # ========================================================================
    # SINGLE-ITEM READS
    # ========================================================================

    async def get_by_id(self, question_id: str) -> Optional[QuestionRecord]:
        payload = await self.cache_aside(
            self.keys.question_by_id(question_id),
            lambda: self._load_published(Question.id == question_id),
        )
        return QuestionRecord.from_dict(payload) if payload else None

    async def get_by_slug(self, qn_slug: str) -> Optional[QuestionRecord]:
        payload = await self.cache_aside(
            self.keys.question_by_slug(qn_slug),
            lambda: self._load_published(Question.qn_slug == qn_slug),
        )
        return QuestionRecord.from_dict(payload) if payload else None

    async def get_any_by_id(self, question_id: str) -> Optional[QuestionRecord]:
        async with self.db.get_session() as session:
            model = await self._repo.get(session, question_id)
            return QuestionRecord.from_model(model) if model else None

    async def _load_published(self, condition: Any) -> Optional[Dict[str, Any]]:
        async with self.db.get_session() as session:
            model = await self._repo.find_one_where(
                session, condition, Question.status == QuestionStatus.PUBLISHED
            )
            return QuestionRecord.from_model(model).to_dict() if model else None

    # ========================================================================
    # PAGES
    # ========================================================================

    async def list_by_index(self, topic_slug: str, index: int, limit: int) -> QuestionPage:
        """
        Published questions of a topic from position ``index`` (1-based).

        Raises:
            NotFoundError: Topic does not exist
            ValidationError: ``index`` or ``limit`` below 1
        """
        self.validate_positive_int(index, "index")
        self.validate_positive_int(limit, "limit")

        async def load() -> Dict[str, Any]:
            topic = await self.topics.require_by_slug(topic_slug)
            page = await self._load_page(topic.id, index, limit)
            return page.to_dict()

        payload = await self.cache_aside(
            self.keys.questions_by_index(topic_slug, index, limit),
            load,
            cache_if=_has_page,
        )
        return QuestionPage.from_dict(payload)

    async def list_by_tags(
        self,
        topic_slug: str,
        tags: Iterable[str],
        index: int,
        limit: int,
    ) -> QuestionPage:
        """
        Published questions of a topic carrying any of ``tags``.

        Tag order and duplicates never change the result or the cache key.
        """
        self.validate_positive_int(index, "index")
        self.validate_positive_int(limit, "limit")
        canonical = canonicalize_tags(tags)
        if not canonical:
            raise ValidationError("tags", "at least one tag is required")

        async def load() -> Dict[str, Any]:
            topic = await self.topics.require_by_slug(topic_slug)
            tagged = select(QuestionTag.question_id).where(QuestionTag.tag.in_(canonical))
            page = await self._load_page(topic.id, index, limit, Question.id.in_(tagged))
            return page.to_dict()

        payload = await self.cache_aside(
            self.keys.questions_by_tags(topic_slug, canonical, index, limit),
            load,
            cache_if=_has_page,
        )
        return QuestionPage.from_dict(payload)

    async def list_bookmarked(
        self,
        topic_slug: str,
        seq_nos: Sequence[int],
        index: int,
        limit: int,
    ) -> QuestionPage:
        """
        Page through the published questions at ``seq_nos``.

        Uncached: the position list is per-user. ``total_count`` is the
        number of bookmarked positions, not the number that still resolve.
        """
        self.validate_positive_int(index, "index")
        self.validate_positive_int(limit, "limit")
        topic = await self.topics.require_by_slug(topic_slug)
        if not seq_nos:
            return QuestionPage()

        page = await self._load_page(
            topic.id, index, limit, Question.seq_no.in_(list(seq_nos))
        )
        return QuestionPage(questions=page.questions, total_count=len(seq_nos))

    async def _load_page(
        self, topic_id: str, index: int, limit: int, *extra: Any
    ) -> QuestionPage:
        conditions: List[Any] = [
            Question.topic_id == topic_id,
            Question.status == QuestionStatus.PUBLISHED,
            *extra,
        ]
        async with self.db.get_session() as session:
            total = await self._repo.count(session, *conditions)
            models = await self._repo.find_many_where(
                session,
                *conditions,
                order_by=[Question.seq_no.asc(), Question.id],
                offset=index - 1,
                limit=limit,
            )
            questions = tuple(QuestionRecord.from_model(model) for model in models)

        return QuestionPage(questions=questions, total_count=total)
