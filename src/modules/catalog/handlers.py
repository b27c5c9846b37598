"""
Catalog Handlers
================

Purpose
-------
The contract exposed to a routing layer: functions that take validated
primitives, orchestrate the catalog services and return typed records or
raise typed failures (``ValidationError``, ``NotFoundError``,
``ConflictError``, ``PremiumRequiredError``) for the caller to translate
into transport responses.

Responsibilities
----------------
- Resolve names to slugs and slugs to entities
- Counter orchestration: a child create/delete/move adjusts the parent's
  count explicitly, after the child write succeeded
- Sequence placement before a question is written
- Page-size clamping, empty-page handling and premium filtering

Non-Responsibilities
--------------------
- Authentication (the routing layer resolves ``user_id`` through
  ``AuthClient`` and passes it in)
- Caching and invalidation (the services own both)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from src.core.cache.keys import canonicalize_tags
from src.database.models import QuestionStatus
from src.modules.catalog.schemas import (
    ProviderRecord,
    QuestionPage,
    QuestionRecord,
    TopicRecord,
)
from src.modules.catalog.topic_service import UNSET
from src.modules.shared.exceptions import NotFoundError, ValidationError
from src.utils.slug import generate_question_slug, generate_slug

if TYPE_CHECKING:
    from logging import Logger

    from src.modules.bookmarks.service import BookmarkStore
    from src.modules.catalog.provider_service import ProviderService
    from src.modules.catalog.question_service import QuestionService
    from src.modules.catalog.sequence import SequenceManager
    from src.modules.catalog.topic_service import TopicService
    from src.modules.premium.gate import PremiumGate


QUESTION_CHANGE_FIELDS = frozenset(
    {
        "topic",
        "seq_no",
        "question",
        "answer",
        "options",
        "explanation",
        "image_url",
        "difficulty",
        "tags",
        "status",
        "is_premium",
    }
)


@dataclass(frozen=True)
class BookmarkedQuestions:
    """A page of bookmarked questions plus the positions it was drawn from."""

    page: QuestionPage
    bookmarked_seq_nos: Tuple[int, ...]

    @property
    def total_bookmarked(self) -> int:
        return self.page.total_count


def parse_positive_int(value: Any, field: str = "seq_no") -> int:
    """Accept a positive int or its decimal string form."""
    if isinstance(value, str):
        try:
            value = int(value.strip(), 10)
        except ValueError:
            raise ValidationError(field, f"{field} must be a positive integer") from None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(field, f"{field} must be a positive integer")
    return value


def parse_tags(tags: Union[None, str, Iterable[str]]) -> List[str]:
    """Comma-separated string or iterable to a canonical tag list."""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    return canonicalize_tags(tags)


class CatalogHandlers:
    """
    Orchestration over the catalog, bookmark and premium components.

    Args:
        providers: Provider tier service
        topics: Topic tier service
        questions: Question tier service
        sequence: Sequence manager for question placement
        bookmarks: Bookmark store
        premium: Premium gate
        logger: Structured logger instance
        fetch_limit: Page size when the caller gives none
        max_limit: Upper bound applied to caller-supplied page sizes
    """

    def __init__(
        self,
        providers: ProviderService,
        topics: TopicService,
        questions: QuestionService,
        sequence: SequenceManager,
        bookmarks: BookmarkStore,
        premium: PremiumGate,
        logger: Logger,
        fetch_limit: int = 1,
        max_limit: int = 50,
    ) -> None:
        self.providers = providers
        self.topics = topics
        self.questions = questions
        self.sequence = sequence
        self.bookmarks = bookmarks
        self.premium = premium
        self.log = logger
        self.fetch_limit = fetch_limit
        self.max_limit = max_limit

    # ========================================================================
    # PROVIDERS
    # ========================================================================

    async def create_provider(self, name: str) -> ProviderRecord:
        return await self.providers.create(name)

    async def update_provider(self, provider_id: str, name: str) -> ProviderRecord:
        return await self.providers.update(provider_id, name)

    async def delete_provider(self, provider_id: str) -> None:
        await self.providers.delete(provider_id)

    async def list_providers(self) -> List[ProviderRecord]:
        return await self.providers.list_all()

    async def get_provider_by_id(self, provider_id: str) -> ProviderRecord:
        provider = await self.providers.get_by_id(provider_id)
        if provider is None:
            raise NotFoundError("Provider", provider_id)
        return provider

    async def get_provider_by_slug(self, provider_slug: str) -> ProviderRecord:
        return await self.providers.require_by_slug(provider_slug)

    # ========================================================================
    # TOPICS
    # ========================================================================

    async def create_topic(
        self,
        name: str,
        provider_name: str,
        tags: Optional[Iterable[str]] = None,
    ) -> TopicRecord:
        if not name or not provider_name:
            raise ValidationError("topic", "Topic name and provider are required")

        provider = await self.providers.require_by_slug(generate_slug(provider_name))
        topic = await self.topics.create(name, provider.id, tags)
        await self.providers.increment_topic_count(provider.id)
        return topic

    async def update_topic(
        self,
        topic_id: str,
        name: Optional[str] = None,
        provider_id: Optional[str] = None,
        tags: Any = UNSET,
    ) -> TopicRecord:
        """Update a topic, moving ``topic_count`` when the provider changes."""
        current = await self.topics.require_by_id(topic_id)
        updated = await self.topics.update(topic_id, name=name, provider_id=provider_id, tags=tags)

        if updated.provider_id != current.provider_id:
            await self.providers.decrement_topic_count(current.provider_id)
            await self.providers.increment_topic_count(updated.provider_id)
        return updated

    async def delete_topic(self, topic_id: str) -> None:
        deleted = await self.topics.delete(topic_id)
        await self.providers.decrement_topic_count(deleted.provider_id)

    async def list_topics(self) -> List[TopicRecord]:
        return await self.topics.list_all()

    async def get_topic_by_id(self, topic_id: str) -> TopicRecord:
        return await self.topics.require_by_id(topic_id)

    async def get_topic_by_slug(self, topic_slug: str) -> TopicRecord:
        return await self.topics.require_by_slug(topic_slug)

    async def list_topics_by_provider_id(self, provider_id: str) -> List[TopicRecord]:
        return await self.topics.list_by_provider_id(provider_id)

    async def list_topics_by_provider_slug(self, provider_slug: str) -> List[TopicRecord]:
        return await self.topics.list_by_provider_slug(provider_slug)

    # ========================================================================
    # QUESTION WRITES
    # ========================================================================

    async def create_question(
        self,
        topic_name: str,
        question: str,
        answer: int,
        options: Sequence[Mapping[str, Any]],
        difficulty: str,
        seq_no: Optional[Union[int, str]] = None,
        explanation: Optional[str] = None,
        image_url: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        status: Optional[str] = None,
        is_premium: bool = False,
    ) -> QuestionRecord:
        """
        Create a question, shifting later positions when ``seq_no`` is taken.

        Without ``seq_no`` the question is appended after the last published
        question of the topic.
        """
        if not topic_name or not question or answer is None or not options or not difficulty:
            raise ValidationError(
                "question",
                "topic, question, answer, options, and difficulty are required",
            )
        requested = parse_positive_int(seq_no) if seq_no is not None else None

        topic = await self.topics.require_by_slug(generate_slug(topic_name))
        position = await self.sequence.place(topic.id, requested)

        created = await self.questions.create(
            topic_id=topic.id,
            seq_no=position,
            qn_slug=generate_question_slug(question),
            question=question,
            answer=answer,
            options=options,
            difficulty=difficulty,
            explanation=explanation,
            image_url=image_url,
            tags=tags,
            status=status or QuestionStatus.PUBLISHED,
            is_premium=is_premium,
        )
        await self.topics.increment_question_count(topic.id)
        return created

    async def update_question(self, question_id: str, **changes: Any) -> QuestionRecord:
        """
        Apply partial changes to a question.

        ``topic`` is a topic name. A new ``question`` text regenerates the
        slug. A new ``seq_no`` or topic re-places the question through the
        sequence manager, as does publishing a draft in place. A topic move
        shifts one unit of ``qn_count`` from the old topic to the new one.
        """
        unknown = set(changes) - QUESTION_CHANGE_FIELDS
        if unknown:
            raise ValidationError(sorted(unknown)[0], "field cannot be updated")

        current = await self.questions.get_any_by_id(question_id)
        if current is None:
            raise NotFoundError("Question", question_id)

        target_topic_id = current.topic_id
        if changes.get("topic"):
            topic = await self.topics.require_by_slug(generate_slug(changes["topic"]))
            target_topic_id = topic.id
        moved = target_topic_id != current.topic_id
        publishing = (
            changes.get("status") == QuestionStatus.PUBLISHED
            and current.status != QuestionStatus.PUBLISHED
        )

        values = {
            field: changes[field]
            for field in ("answer", "explanation", "image_url", "is_premium")
            if changes.get(field) is not None
        }
        for field in ("options", "difficulty", "status"):
            if changes.get(field):
                values[field] = changes[field]
        if changes.get("question"):
            values["question"] = changes["question"]
            values["qn_slug"] = generate_question_slug(changes["question"])

        if changes.get("seq_no") is not None:
            values["seq_no"] = await self.sequence.place(
                target_topic_id, parse_positive_int(changes["seq_no"]), exclude_id=question_id
            )
        elif moved:
            values["seq_no"] = await self.sequence.place(target_topic_id)
        elif publishing:
            # A draft keeps its position; published occupants from there on move up
            values["seq_no"] = await self.sequence.place(
                target_topic_id, current.seq_no, exclude_id=question_id
            )

        updated = await self.questions.update(
            question_id,
            values,
            topic_id=target_topic_id if moved else None,
            tags=changes.get("tags"),
        )

        if moved:
            await self.topics.decrement_question_count(current.topic_id)
            await self.topics.increment_question_count(target_topic_id)
        return updated

    async def delete_question(self, question_id: str) -> None:
        deleted = await self.questions.delete(question_id)
        await self.topics.decrement_question_count(deleted.topic_id)

    # ========================================================================
    # QUESTION READS
    # ========================================================================

    async def get_question_by_slug(
        self, qn_slug: str, user_id: Optional[str] = None
    ) -> QuestionRecord:
        """
        Raises:
            NotFoundError: No published question with this slug
            PremiumRequiredError: Premium question, caller not entitled
        """
        if not qn_slug:
            raise ValidationError("slug", "Question slug is required")
        question = await self.questions.get_by_slug(qn_slug)
        if question is None:
            raise NotFoundError("Question", qn_slug)
        visible = await self.premium.filter([question], user_id, single=True)
        return visible[0]

    async def get_question_by_id(
        self, question_id: str, user_id: Optional[str] = None
    ) -> QuestionRecord:
        question = await self.questions.get_by_id(question_id)
        if question is None:
            raise NotFoundError("Question", question_id)
        visible = await self.premium.filter([question], user_id, single=True)
        return visible[0]

    def resolve_limit(self, limit: Optional[Union[int, str]]) -> int:
        """Caller page size clamped to ``max_limit``; default ``fetch_limit``."""
        if limit is None or limit == "":
            return self.fetch_limit
        return min(parse_positive_int(limit, "limit"), self.max_limit)

    async def get_questions(
        self,
        topic_slug: str,
        index: Union[int, str],
        limit: Optional[Union[int, str]] = None,
        tags: Union[None, str, Iterable[str]] = None,
        user_id: Optional[str] = None,
    ) -> QuestionPage:
        """
        One page of a topic's questions, optionally narrowed to ``tags``.

        ``total_count`` reflects the catalog, not the caller's entitlement.

        Raises:
            NotFoundError: Topic missing or the page is empty
        """
        if not topic_slug:
            raise ValidationError("topic_slug", "topic_slug is required")
        start = parse_positive_int(index, "index")
        page_size = self.resolve_limit(limit)
        tag_list = parse_tags(tags)

        if tag_list:
            page = await self.questions.list_by_tags(topic_slug, tag_list, start, page_size)
        else:
            page = await self.questions.list_by_index(topic_slug, start, page_size)

        if not page.questions:
            raise NotFoundError("Questions", topic_slug)

        visible = await self.premium.filter(page.questions, user_id, single=page_size == 1)
        return page.with_questions(visible)

    async def get_bookmarked_questions(
        self,
        user_id: str,
        topic_slug: str,
        index: Union[int, str],
        limit: Optional[Union[int, str]] = None,
    ) -> BookmarkedQuestions:
        """
        Page through the questions a user bookmarked in a topic.

        Raises:
            NotFoundError: Topic missing or the user has no bookmarks in it
        """
        if not topic_slug:
            raise ValidationError("topic_slug", "topic_slug is required")
        start = parse_positive_int(index, "index")
        page_size = self.resolve_limit(limit)

        seq_nos = await self.bookmarks.list(user_id, topic_slug)
        if not seq_nos:
            raise NotFoundError("Bookmarks", topic_slug)

        page = await self.questions.list_bookmarked(topic_slug, seq_nos, start, page_size)
        visible = await self.premium.filter(page.questions, user_id, single=page_size == 1)
        return BookmarkedQuestions(
            page=page.with_questions(visible),
            bookmarked_seq_nos=tuple(seq_nos),
        )
