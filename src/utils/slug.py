"""
Slug helpers.

Pure string normalization used to derive the stable, human-readable
lookup keys stored alongside opaque ids.
"""

from __future__ import annotations

import hashlib
import re

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\-]+")
_DASH_RUNS = re.compile(r"-{2,}")

QUESTION_SLUG_WORDS = 8
QUESTION_SLUG_HASH_LENGTH = 10


def generate_slug(text: str) -> str:
    """
    Lowercase, hyphenated, URL-safe slug.

    >>> generate_slug("  Linear Algebra: Basics! ")
    'linear-algebra-basics'
    """
    slug = str(text).lower().strip()
    slug = _WHITESPACE.sub("-", slug)
    slug = _NON_WORD.sub("", slug)
    slug = _DASH_RUNS.sub("-", slug)
    return slug.strip("-")


def generate_question_slug(question: str) -> str:
    """
    Slug of the first eight words plus a content hash of the full text.

    The hash keeps slugs unique for questions that open with the same words.
    """
    words = " ".join(question.strip().split()[:QUESTION_SLUG_WORDS])
    digest = hashlib.sha256(question.encode("utf-8")).hexdigest()
    return f"{generate_slug(words)}-{digest[:QUESTION_SLUG_HASH_LENGTH]}"
