"""
Bookmark Store
==============

Purpose
-------
Per-user, per-topic bookmark sets kept inside the user's profile row.

Domain
------
- ``list`` / ``is_bookmarked``: read the positions bookmarked in a topic
- ``toggle``: flip one position and report the new state
- ``clear``: drop every bookmark of a topic

State Machine (toggle)
----------------------
- no entry for the topic      -> entry created with [seq_no]  -> True
- entry contains seq_no       -> seq_no removed               -> False
- entry lacks seq_no          -> seq_no appended              -> True

After every mutation, entries whose list became empty are pruned.

Profiles
--------
Profiles are created lazily on first access and cached for a short TTL
(profile data can change outside this store). Reads go through the cache;
mutations re-read the row inside their own transaction and evict the
profile key after commit. A legacy-shaped profile is migrated in the same
transaction that first loads it (see ``migration``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List

from sqlalchemy.orm.attributes import flag_modified

from src.core.logging.logger import get_logger
from src.database.models import Profile
from src.modules.bookmarks.migration import merge_entries, migrate_legacy, needs_migration
from src.modules.bookmarks.schemas import ProfileRecord
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import ConflictError, ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.cache.keys import CacheKeys
    from src.core.cache.service import CacheAsideStore
    from src.core.database.service import DatabaseService
    from src.modules.catalog.topic_service import TopicService


INVALID_SEQ_NO = "Invalid question sequence number"


class BookmarkStore(BaseService):
    """
    Owner of Profile rows.

    Args:
        db: Durable store access
        cache: Failure-tolerant cache
        keys: Cache key scheme
        logger: Structured logger instance
        topics: Resolves topic slugs and their ``qn_count``
        ttl_seconds: Profile cache TTL (five minutes by default)
    """

    def __init__(
        self,
        db: DatabaseService,
        cache: CacheAsideStore,
        keys: CacheKeys,
        logger: Logger,
        topics: TopicService,
        ttl_seconds: int = 300,
    ) -> None:
        super().__init__(db, cache, keys, logger, ttl_seconds)
        self.topics = topics
        self._repo = BaseRepository(Profile, get_logger(f"{__name__}.ProfileRepository"))

    # ========================================================================
    # PROFILE
    # ========================================================================

    async def get_or_create(self, user_id: str) -> ProfileRecord:
        user_id = self.validate_required_str(user_id, "user_id")
        payload = await self.cache_aside(
            self.keys.profile(user_id), lambda: self._load_or_create(user_id)
        )
        return ProfileRecord.from_dict(payload)

    async def _load_or_create(self, user_id: str) -> Dict[str, Any]:
        try:
            return await self._load_or_create_once(user_id)
        except ConflictError:
            # A concurrent first access inserted the row; read it instead
            return await self._load_or_create_once(user_id)

    async def _load_or_create_once(self, user_id: str) -> Dict[str, Any]:
        async with self.db.get_transaction() as session:
            profile = await self._ensure_profile(session, user_id)
            return ProfileRecord.from_model(profile).to_dict()

    async def _ensure_profile(self, session: AsyncSession, user_id: str) -> Profile:
        """Fetch the row for update, creating or migrating it as needed."""
        profile = await self._repo.find_one_where(
            session, Profile.user_id == user_id, for_update=True
        )

        if profile is None:
            profile = self._repo.add(
                session, Profile(user_id=user_id, bookmarks=[], topics=None)
            )
            await self._repo.flush(session)
            self.log.info("Profile created", extra={"user_id": user_id})
            return profile

        if needs_migration(profile.bookmarks, profile.topics):
            profile.bookmarks = migrate_legacy(profile.topics)
            profile.topics = None
            await self._repo.flush(session)
            self.log.info(
                "Legacy bookmarks migrated",
                extra={"user_id": user_id, "topic_entries": len(profile.bookmarks)},
            )
        return profile

    # ========================================================================
    # READS
    # ========================================================================

    async def list(self, user_id: str, topic_slug: str) -> List[int]:
        """
        Positions bookmarked in a topic, in insertion order.

        Raises:
            NotFoundError: Topic does not exist
        """
        topic = await self.topics.require_by_slug(topic_slug)
        profile = await self.get_or_create(user_id)
        return profile.seq_nos_for(topic.id)

    async def is_bookmarked(self, user_id: str, topic_slug: str, seq_no: int) -> bool:
        return seq_no in await self.list(user_id, topic_slug)

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    async def toggle(self, user_id: str, topic_slug: str, seq_no: int) -> bool:
        """
        Flip the bookmark at ``seq_no`` and return the new state.

        Raises:
            NotFoundError: Topic does not exist
            ValidationError: ``seq_no`` outside ``1..qn_count``
        """
        user_id = self.validate_required_str(user_id, "user_id")
        topic = await self.topics.require_by_slug(topic_slug)
        if (
            isinstance(seq_no, bool)
            or not isinstance(seq_no, int)
            or not 1 <= seq_no <= topic.qn_count
        ):
            raise ValidationError("seq_no", INVALID_SEQ_NO)

        async with self.db.get_transaction() as session:
            profile = await self._ensure_profile(session, user_id)
            entries = merge_entries(profile.bookmarks)

            entry = next((e for e in entries if e["topic_id"] == topic.id), None)
            if entry is None:
                entries.append({"topic_id": topic.id, "bookmarked_seq_nos": [seq_no]})
                bookmarked = True
            elif seq_no in entry["bookmarked_seq_nos"]:
                entry["bookmarked_seq_nos"].remove(seq_no)
                bookmarked = False
            else:
                entry["bookmarked_seq_nos"].append(seq_no)
                bookmarked = True

            self._store(profile, entries)

        await self.cache.invalidate(self.keys.profile(user_id))
        self.log_operation(
            "toggle_bookmark",
            user_id=user_id,
            topic_id=topic.id,
            seq_no=seq_no,
            bookmarked=bookmarked,
        )
        return bookmarked

    async def clear(self, user_id: str, topic_slug: str) -> None:
        """Remove every bookmark the user holds in a topic."""
        user_id = self.validate_required_str(user_id, "user_id")
        topic = await self.topics.require_by_slug(topic_slug)

        async with self.db.get_transaction() as session:
            profile = await self._ensure_profile(session, user_id)
            entries = [
                entry for entry in merge_entries(profile.bookmarks)
                if entry["topic_id"] != topic.id
            ]
            self._store(profile, entries)

        await self.cache.invalidate(self.keys.profile(user_id))
        self.log_operation("clear_bookmarks", user_id=user_id, topic_id=topic.id)

    @staticmethod
    def _store(profile: Profile, entries: List[Dict[str, Any]]) -> None:
        profile.bookmarks = [e for e in entries if e["bookmarked_seq_nos"]]
        flag_modified(profile, "bookmarks")
