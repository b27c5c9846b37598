"""
Typed bookmark entities.

``ProfileRecord`` is what the bookmark store caches and returns; its
``bookmarks`` are always normalized (one entry per topic, no empty entries).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from src.database.models import Profile
from src.modules.bookmarks.migration import CURRENT_SEQ_FIELD, merge_entries


@dataclass(frozen=True)
class BookmarkEntry:
    topic_id: str
    bookmarked_seq_nos: Tuple[int, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"topic_id": self.topic_id, CURRENT_SEQ_FIELD: list(self.bookmarked_seq_nos)}


def entries_from_raw(raw: Any) -> Tuple[BookmarkEntry, ...]:
    return tuple(
        BookmarkEntry(topic_id=item["topic_id"], bookmarked_seq_nos=tuple(item[CURRENT_SEQ_FIELD]))
        for item in merge_entries(raw)
    )


@dataclass(frozen=True)
class ProfileRecord:
    id: str
    user_id: str
    bookmarks: Tuple[BookmarkEntry, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: Profile) -> "ProfileRecord":
        return cls(
            id=model.id,
            user_id=model.user_id,
            bookmarks=entries_from_raw(model.bookmarks),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def seq_nos_for(self, topic_id: str) -> List[int]:
        """Bookmarked positions for a topic, in insertion order."""
        for entry in self.bookmarks:
            if entry.topic_id == topic_id:
                return list(entry.bookmarked_seq_nos)
        return []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "bookmarks": [entry.to_dict() for entry in self.bookmarks],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProfileRecord":
        created_at = data.get("created_at")
        updated_at = data.get("updated_at")
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            bookmarks=entries_from_raw(data.get("bookmarks")),
            created_at=datetime.fromisoformat(created_at) if created_at else None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else None,
        )
