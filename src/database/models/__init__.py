"""
Database Models Package
========================

SQLAlchemy ORM models for the Cortex catalog.

- catalog: Provider, Topic, Question, QuestionTag
- profile: Profile (per-user bookmarks)

Models are schema-only; counters, sequencing and cache coherence live in
the service layer.
"""

from src.core.database.base import Base

from .catalog import Provider, Question, QuestionStatus, QuestionTag, Topic
from .profile import Profile

__all__ = [
    "Base",
    "Provider",
    "Topic",
    "Question",
    "QuestionTag",
    "QuestionStatus",
    "Profile",
]
