"""
Sequence Manager
================

Purpose
-------
Assign and maintain the topic-scoped, 1-based ``seq_no`` that orders
questions inside a topic.

Algorithm
---------
To place a question at position P in topic T:

1. If P is omitted, use ``max(seq_no)`` over published questions in T plus
   one (1 for an empty topic). This path never shifts.
2. Otherwise, if a published question already occupies P, increment the
   ``seq_no`` of every question in T with ``seq_no >= P`` in one bulk
   UPDATE (never a per-row loop).
3. The caller inserts (or moves) its question at P.

Every shift evicts the questions cache family: cached page boundaries are
no longer valid once positions move.

Concurrency
-----------
Occupancy check, shift and insert are separate transactions. Concurrent
inserts at overlapping positions race and the last writer's ordering wins;
no lock is taken.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Optional

from src.core.cache.keys import EntityKind
from src.core.logging.logger import get_logger
from src.database.models import Question, QuestionStatus
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from logging import Logger

    from src.core.cache.keys import CacheKeys
    from src.core.cache.service import CacheAsideStore
    from src.core.database.service import DatabaseService


class SequenceManager(BaseService):
    """Topic-scoped sequence assignment on top of the question table."""

    def __init__(
        self,
        db: DatabaseService,
        cache: CacheAsideStore,
        keys: CacheKeys,
        logger: Logger,
    ) -> None:
        super().__init__(db, cache, keys, logger)
        self._repo = BaseRepository(
            Question, get_logger(f"{__name__}.QuestionRepository")
        )

    async def next_seq_no(self, topic_id: str) -> int:
        """One past the highest published ``seq_no`` in the topic."""
        async with self.db.get_session() as session:
            last = await self._repo.max_value(
                session,
                Question.seq_no,
                Question.topic_id == topic_id,
                Question.status == QuestionStatus.PUBLISHED,
            )
        return (last or 0) + 1

    async def is_occupied(
        self, topic_id: str, seq_no: int, exclude_id: Optional[str] = None
    ) -> bool:
        """Whether a published question other than ``exclude_id`` sits at ``seq_no``."""
        conditions: List[Any] = [
            Question.topic_id == topic_id,
            Question.seq_no == seq_no,
            Question.status == QuestionStatus.PUBLISHED,
        ]
        if exclude_id is not None:
            conditions.append(Question.id != exclude_id)

        async with self.db.get_session() as session:
            return await self._repo.exists(session, *conditions)

    async def shift(
        self, topic_id: str, from_seq_no: int, exclude_id: Optional[str] = None
    ) -> int:
        """
        Move every question in the topic at or after ``from_seq_no`` up by one.

        Applies to all statuses so drafts keep their relative order once
        published.

        Returns:
            Number of questions shifted
        """
        conditions: List[Any] = [
            Question.topic_id == topic_id,
            Question.seq_no >= from_seq_no,
        ]
        if exclude_id is not None:
            conditions.append(Question.id != exclude_id)

        async with self.db.get_transaction() as session:
            shifted = await self._repo.update_where(
                session, {"seq_no": Question.seq_no + 1}, *conditions
            )

        await self.cache.invalidate_entity(EntityKind.QUESTION)
        self.log.info(
            "Question sequence shifted",
            extra={
                "topic_id": topic_id,
                "from_seq_no": from_seq_no,
                "shifted_count": shifted,
            },
        )
        return shifted

    async def place(
        self,
        topic_id: str,
        requested: Optional[int] = None,
        exclude_id: Optional[str] = None,
    ) -> int:
        """
        Resolve the ``seq_no`` a question should be written at.

        Args:
            topic_id: Topic the question belongs to (after any move)
            requested: Desired position, or None to append
            exclude_id: Question being re-positioned, ignored by the
                occupancy check and the shift

        Returns:
            The position to write

        Raises:
            ValidationError: ``requested`` is not a positive integer
        """
        if requested is None:
            return await self.next_seq_no(topic_id)

        self.validate_positive_int(requested, "seq_no")
        if await self.is_occupied(topic_id, requested, exclude_id):
            await self.shift(topic_id, requested, exclude_id)
        return requested
