"""
Bookmarks module: per-user bookmark sets with legacy profile migration.

Usage
-----
    from src.modules.bookmarks import BookmarkStore
"""

from src.modules.bookmarks.schemas import BookmarkEntry, ProfileRecord
from src.modules.bookmarks.service import BookmarkStore

__all__ = ["BookmarkStore", "BookmarkEntry", "ProfileRecord"]
