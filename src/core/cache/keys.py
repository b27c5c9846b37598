"""
Cache key scheme for the Cortex catalog.

Purpose
-------
Map (entity kind, identifying attributes) to deterministic cache keys and
produce the wildcard patterns used for bulk invalidation. Pure functions,
no I/O, no state beyond the namespace prefix.

Key Templates
-------------
Providers:
- ``{prefix}:providers:all``
- ``{prefix}:providers:id:{provider_id}``
- ``{prefix}:providers:slug:{provider_slug}``

Topics:
- ``{prefix}:topics:all``
- ``{prefix}:topics:id:{topic_id}``
- ``{prefix}:topics:slug:{topic_slug}``
- ``{prefix}:topics:provider:{provider_id}``
- ``{prefix}:topics:provider:slug:{provider_slug}``

Questions:
- ``{prefix}:questions:id:{question_id}``
- ``{prefix}:questions:slug:{qn_slug}``
- ``{prefix}:questions:topic:{topic_slug}:index:{index}:limit:{limit}``
- ``{prefix}:questions:topic:{topic_slug}:tags:{tags}:index:{index}:limit:{limit}``

Profiles:
- ``{prefix}:profile:{user_id}``

Invalidation
------------
Writes invalidate whole families by pattern (``{prefix}:{family}:*``)
rather than tracking which cached pages contain which entity:

- provider mutation -> providers, topics, questions
- topic mutation (including ``qn_count``) -> topics, providers, questions
- question mutation or sequence shift -> questions
- bookmark mutation -> the single profile key
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Tuple


class CacheFamily(str, Enum):
    PROVIDERS = "providers"
    TOPICS = "topics"
    QUESTIONS = "questions"
    PROFILE = "profile"


class EntityKind(str, Enum):
    PROVIDER = "provider"
    TOPIC = "topic"
    QUESTION = "question"


# Topic reads embed their provider and provider reads embed their topics;
# question reads embed a topic snapshot that carries qn_count and the provider.
INVALIDATION_MAP: Dict[EntityKind, Tuple[CacheFamily, ...]] = {
    EntityKind.PROVIDER: (CacheFamily.PROVIDERS, CacheFamily.TOPICS, CacheFamily.QUESTIONS),
    EntityKind.TOPIC: (CacheFamily.TOPICS, CacheFamily.PROVIDERS, CacheFamily.QUESTIONS),
    EntityKind.QUESTION: (CacheFamily.QUESTIONS,),
}


def canonicalize_tags(tags: Iterable[str]) -> List[str]:
    """
    Normalize a tag set so that ordering and duplicates never alias.

    Whitespace is stripped, empty tags dropped, duplicates removed and the
    result sorted. The same list drives both the cache key and the query.

    Example
    -------
    >>> canonicalize_tags([" geometry", "algebra", "", "geometry"])
    ['algebra', 'geometry']
    """
    return sorted({tag.strip() for tag in tags if tag and tag.strip()})


class CacheKeys:
    """Deterministic key builder bound to one namespace prefix."""

    def __init__(self, prefix: str = "cortex") -> None:
        self.prefix = prefix

    def _key(self, family: CacheFamily, *parts: object) -> str:
        return ":".join([self.prefix, family.value, *(str(part) for part in parts)])

    # ------------------------------------------------------------------
    # Providers
    # ------------------------------------------------------------------

    def providers_all(self) -> str:
        return self._key(CacheFamily.PROVIDERS, "all")

    def provider_by_id(self, provider_id: str) -> str:
        return self._key(CacheFamily.PROVIDERS, "id", provider_id)

    def provider_by_slug(self, provider_slug: str) -> str:
        return self._key(CacheFamily.PROVIDERS, "slug", provider_slug)

    # ------------------------------------------------------------------
    # Topics
    # ------------------------------------------------------------------

    def topics_all(self) -> str:
        return self._key(CacheFamily.TOPICS, "all")

    def topic_by_id(self, topic_id: str) -> str:
        return self._key(CacheFamily.TOPICS, "id", topic_id)

    def topic_by_slug(self, topic_slug: str) -> str:
        return self._key(CacheFamily.TOPICS, "slug", topic_slug)

    def topics_by_provider(self, provider_id: str) -> str:
        return self._key(CacheFamily.TOPICS, "provider", provider_id)

    def topics_by_provider_slug(self, provider_slug: str) -> str:
        return self._key(CacheFamily.TOPICS, "provider", "slug", provider_slug)

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------

    def question_by_id(self, question_id: str) -> str:
        return self._key(CacheFamily.QUESTIONS, "id", question_id)

    def question_by_slug(self, qn_slug: str) -> str:
        return self._key(CacheFamily.QUESTIONS, "slug", qn_slug)

    def questions_by_index(self, topic_slug: str, index: int, limit: int) -> str:
        return self._key(
            CacheFamily.QUESTIONS, "topic", topic_slug, "index", index, "limit", limit
        )

    def questions_by_tags(
        self,
        topic_slug: str,
        tags: Iterable[str],
        index: int,
        limit: int,
    ) -> str:
        canonical = ",".join(canonicalize_tags(tags))
        return self._key(
            CacheFamily.QUESTIONS,
            "topic",
            topic_slug,
            "tags",
            canonical,
            "index",
            index,
            "limit",
            limit,
        )

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def profile(self, user_id: str) -> str:
        return self._key(CacheFamily.PROFILE, user_id)

    # ------------------------------------------------------------------
    # Patterns
    # ------------------------------------------------------------------

    def pattern(self, family: CacheFamily) -> str:
        """Glob covering every parameterization of a family."""
        return f"{self.prefix}:{family.value}:*"

    def patterns_for(self, entity: EntityKind) -> List[str]:
        """Patterns to invalidate after a mutation of ``entity``."""
        return [self.pattern(family) for family in INVALIDATION_MAP[entity]]
