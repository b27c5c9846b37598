"""
Profile Model
=============

One row per external user identity.

- ``bookmarks``: list of ``{topic_id, bookmarked_seq_nos}`` entries
- ``topics``: legacy field, list of ``{topic_id, bookmarked}`` entries;
  folded into ``bookmarks`` on first read and cleared afterwards

JSON columns are replaced wholesale or flagged with ``flag_modified`` by
the bookmark store; in-place mutation is not tracked.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, TimestampMixin


class Profile(Base, IdMixin, TimestampMixin):
    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )

    bookmarks: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
    )

    topics: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(
        JSON,
        nullable=True,
        default=None,
        doc="Legacy bookmark field",
    )
