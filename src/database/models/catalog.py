"""
Catalog Models
==============

Schema-only representation of the three-tier content catalog:

- Provider: owner of topics, carries ``topic_count``
- Topic: owned by a provider, carries ``qn_count`` and a tag list
- Question: positioned inside a topic by ``seq_no``
- QuestionTag: one row per (question, tag) so tag intersection is an
  indexed ``IN`` sub-select

Counters are maintained incrementally by the service layer; nothing here
recomputes them. There is deliberately no unique constraint on
``(topic_id, seq_no)``: shifting a range with ``seq_no = seq_no + 1`` must
never trip a per-row uniqueness check mid-statement.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, IdMixin, TimestampMixin


class QuestionStatus:
    PUBLISHED = "published"
    DRAFT = "draft"


class Provider(Base, IdMixin, TimestampMixin):
    __tablename__ = "providers"

    provider: Mapped[str] = mapped_column(String(200), nullable=False)

    provider_slug: Mapped[str] = mapped_column(
        String(200),
        unique=True,
        nullable=False,
        index=True,
    )

    topic_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Loaded only on request (eager_load=[Provider.topics]); topic reads never pull siblings
    topics: Mapped[List["Topic"]] = relationship(
        "Topic",
        viewonly=True,
        lazy="raise",
        order_by="Topic.topic",
    )


class Topic(Base, IdMixin, TimestampMixin):
    __tablename__ = "topics"

    topic: Mapped[str] = mapped_column(String(200), nullable=False)

    topic_slug: Mapped[str] = mapped_column(
        String(200),
        unique=True,
        nullable=False,
        index=True,
    )

    provider_id: Mapped[str] = mapped_column(
        ForeignKey("providers.id"),
        nullable=False,
        index=True,
    )

    qn_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Number of questions referencing this topic",
    )

    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    provider: Mapped["Provider"] = relationship("Provider", lazy="selectin")


class Question(Base, IdMixin, TimestampMixin):
    __tablename__ = "questions"
    __table_args__ = (
        Index("ix_questions_topic_status_seq", "topic_id", "status", "seq_no"),
    )

    topic_id: Mapped[str] = mapped_column(
        ForeignKey("topics.id"),
        nullable=False,
        index=True,
    )

    seq_no: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="1-based position within the topic",
    )

    qn_slug: Mapped[str] = mapped_column(
        String(300),
        unique=True,
        nullable=False,
        index=True,
    )

    question: Mapped[str] = mapped_column(Text, nullable=False)
    answer: Mapped[int] = mapped_column(Integer, nullable=False)

    options: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        doc="Ordered list of {option_no, option_text, image_url?}",
    )

    explanation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    difficulty: Mapped[str] = mapped_column(String(50), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=QuestionStatus.PUBLISHED,
    )

    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    topic: Mapped["Topic"] = relationship("Topic", lazy="selectin")

    tag_rows: Mapped[List["QuestionTag"]] = relationship(
        "QuestionTag",
        back_populates="question",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="QuestionTag.position",
    )

    @property
    def tags(self) -> List[str]:
        return [row.tag for row in self.tag_rows]

    def set_tags(self, tags: List[str]) -> None:
        """Replace the tag set, keeping rows for tags that stay."""
        unique = list(dict.fromkeys(tag.strip() for tag in tags if tag and tag.strip()))
        existing = {row.tag: row for row in self.tag_rows}
        rows = []
        for position, tag in enumerate(unique):
            row = existing.get(tag) or QuestionTag(tag=tag)
            row.position = position
            rows.append(row)
        self.tag_rows = rows


class QuestionTag(Base):
    __tablename__ = "question_tags"
    __table_args__ = (Index("ix_question_tags_tag", "tag"),)

    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"),
        primary_key=True,
    )

    tag: Mapped[str] = mapped_column(String(100), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    question: Mapped["Question"] = relationship("Question", back_populates="tag_rows")
