"""
Catalog module: providers, topics, questions and sequence management.

Usage
-----
    from src.modules.catalog import CatalogHandlers, QuestionService
"""

from src.modules.catalog.handlers import BookmarkedQuestions, CatalogHandlers
from src.modules.catalog.provider_service import ProviderService
from src.modules.catalog.question_service import QuestionService
from src.modules.catalog.schemas import (
    ProviderRecord,
    QuestionOption,
    QuestionPage,
    QuestionRecord,
    TopicRecord,
)
from src.modules.catalog.sequence import SequenceManager
from src.modules.catalog.topic_service import TopicService

__all__ = [
    "CatalogHandlers",
    "BookmarkedQuestions",
    "ProviderService",
    "TopicService",
    "QuestionService",
    "SequenceManager",
    "ProviderRecord",
    "TopicRecord",
    "QuestionRecord",
    "QuestionOption",
    "QuestionPage",
]
