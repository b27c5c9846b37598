"""
Typed catalog entities.

Purpose
-------
Immutable records returned by the catalog services. They decouple callers
from ORM instances (which are bound to a closed session by the time a
result leaves a service) and define the exact JSON shape stored in cache.

Design Notes
------------
- ``from_model()`` converts an ORM instance; relationship snapshots are
  taken only when asked for, so a record never triggers a lazy load
- ``to_dict()`` / ``from_dict()`` round-trip through the cache; datetimes
  are ISO-8601 strings
- Snapshots nest one level: a topic carries its provider (without topics),
  a provider carries its topics (without provider), a question carries its
  topic (with provider)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from src.database.models import Provider, Question, Topic


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


# ============================================================================
# PROVIDERS & TOPICS
# ============================================================================


@dataclass(frozen=True)
class ProviderRecord:
    id: str
    provider: str
    provider_slug: str
    topic_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    topics: Tuple["TopicRecord", ...] = ()

    @classmethod
    def from_model(cls, model: Provider, include_topics: bool = False) -> "ProviderRecord":
        topics: Tuple[TopicRecord, ...] = ()
        if include_topics:
            topics = tuple(TopicRecord.from_model(topic) for topic in model.topics)
        return cls(
            id=model.id,
            provider=model.provider,
            provider_slug=model.provider_slug,
            topic_count=model.topic_count,
            created_at=model.created_at,
            updated_at=model.updated_at,
            topics=topics,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "provider": self.provider,
            "provider_slug": self.provider_slug,
            "topic_count": self.topic_count,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "topics": [topic.to_dict() for topic in self.topics],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderRecord":
        return cls(
            id=data["id"],
            provider=data["provider"],
            provider_slug=data["provider_slug"],
            topic_count=int(data.get("topic_count", 0)),
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
            topics=tuple(TopicRecord.from_dict(t) for t in data.get("topics") or ()),
        )


@dataclass(frozen=True)
class TopicRecord:
    id: str
    topic: str
    topic_slug: str
    provider_id: str
    qn_count: int
    tags: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    provider: Optional[ProviderRecord] = None

    @classmethod
    def from_model(cls, model: Topic, include_provider: bool = False) -> "TopicRecord":
        provider = None
        if include_provider and model.provider is not None:
            provider = ProviderRecord.from_model(model.provider)
        return cls(
            id=model.id,
            topic=model.topic,
            topic_slug=model.topic_slug,
            provider_id=model.provider_id,
            qn_count=model.qn_count,
            tags=tuple(model.tags or ()),
            created_at=model.created_at,
            updated_at=model.updated_at,
            provider=provider,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "topic": self.topic,
            "topic_slug": self.topic_slug,
            "provider_id": self.provider_id,
            "qn_count": self.qn_count,
            "tags": list(self.tags),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "provider": self.provider.to_dict() if self.provider else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TopicRecord":
        provider = data.get("provider")
        return cls(
            id=data["id"],
            topic=data["topic"],
            topic_slug=data["topic_slug"],
            provider_id=data["provider_id"],
            qn_count=int(data.get("qn_count", 0)),
            tags=tuple(data.get("tags") or ()),
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
            provider=ProviderRecord.from_dict(provider) if provider else None,
        )


# ============================================================================
# QUESTIONS
# ============================================================================


@dataclass(frozen=True)
class QuestionOption:
    option_no: int
    option_text: str
    image_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionOption":
        return cls(
            option_no=int(data["option_no"]),
            option_text=str(data["option_text"]),
            image_url=data.get("image_url"),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "option_no": self.option_no,
            "option_text": self.option_text,
        }
        if self.image_url:
            payload["image_url"] = self.image_url
        return payload


@dataclass(frozen=True)
class QuestionRecord:
    id: str
    topic_id: str
    seq_no: int
    qn_slug: str
    question: str
    answer: int
    difficulty: str
    status: str
    is_premium: bool
    options: Tuple[QuestionOption, ...] = ()
    tags: Tuple[str, ...] = ()
    explanation: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    topic: Optional[TopicRecord] = None

    @classmethod
    def from_model(cls, model: Question, include_topic: bool = True) -> "QuestionRecord":
        topic = None
        if include_topic and model.topic is not None:
            topic = TopicRecord.from_model(model.topic, include_provider=True)
        return cls(
            id=model.id,
            topic_id=model.topic_id,
            seq_no=model.seq_no,
            qn_slug=model.qn_slug,
            question=model.question,
            answer=model.answer,
            difficulty=model.difficulty,
            status=model.status,
            is_premium=bool(model.is_premium),
            options=tuple(QuestionOption.from_dict(o) for o in model.options or ()),
            tags=tuple(model.tags),
            explanation=model.explanation,
            image_url=model.image_url,
            created_at=model.created_at,
            updated_at=model.updated_at,
            topic=topic,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "topic_id": self.topic_id,
            "seq_no": self.seq_no,
            "qn_slug": self.qn_slug,
            "question": self.question,
            "answer": self.answer,
            "difficulty": self.difficulty,
            "status": self.status,
            "is_premium": self.is_premium,
            "options": [option.to_dict() for option in self.options],
            "tags": list(self.tags),
            "explanation": self.explanation,
            "image_url": self.image_url,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "topic": self.topic.to_dict() if self.topic else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionRecord":
        topic = data.get("topic")
        return cls(
            id=data["id"],
            topic_id=data["topic_id"],
            seq_no=int(data["seq_no"]),
            qn_slug=data["qn_slug"],
            question=data["question"],
            answer=int(data["answer"]),
            difficulty=data["difficulty"],
            status=data["status"],
            is_premium=bool(data.get("is_premium", False)),
            options=tuple(QuestionOption.from_dict(o) for o in data.get("options") or ()),
            tags=tuple(data.get("tags") or ()),
            explanation=data.get("explanation"),
            image_url=data.get("image_url"),
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
            topic=TopicRecord.from_dict(topic) if topic else None,
        )


@dataclass(frozen=True)
class QuestionPage:
    """
    One page of questions plus the size of the whole result set.

    ``total_count`` is computed over the same predicate as the page and is
    not reduced when premium filtering shrinks ``questions``.
    """

    questions: Tuple[QuestionRecord, ...] = field(default_factory=tuple)
    total_count: int = 0

    def __len__(self) -> int:
        return len(self.questions)

    def with_questions(self, questions: Iterable[QuestionRecord]) -> "QuestionPage":
        return replace(self, questions=tuple(questions))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "questions": [question.to_dict() for question in self.questions],
            "total_count": self.total_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionPage":
        return cls(
            questions=tuple(QuestionRecord.from_dict(q) for q in data.get("questions") or ()),
            total_count=int(data.get("total_count", 0)),
        )
