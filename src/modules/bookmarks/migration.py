"""
Profile bookmark normalization and legacy migration.

Two shapes have been stored in a profile over time:

- current: ``bookmarks = [{"topic_id": str, "bookmarked_seq_nos": [int, ...]}]``
- legacy:  ``topics    = [{"topic_id": str, "bookmarked": [int, ...]}]``

Both mean the same thing. A profile whose current field is empty and whose
legacy field is populated is rewritten into the current shape exactly once;
the legacy field is cleared in the same write, so a migrated profile never
qualifies again.

Pure functions only; persistence belongs to the bookmark store.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

CURRENT_SEQ_FIELD = "bookmarked_seq_nos"
LEGACY_SEQ_FIELD = "bookmarked"


def _as_seq_no(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        seq_no = int(value)
    except (TypeError, ValueError):
        return None
    return seq_no if seq_no >= 1 else None


def merge_entries(
    entries: Optional[Iterable[Any]], seq_field: str = CURRENT_SEQ_FIELD
) -> List[Dict[str, Any]]:
    """
    Collapse raw entries into one entry per topic in the current shape.

    Duplicate topic entries are merged, duplicate positions dropped
    (first occurrence wins, order kept) and empty entries pruned.
    Malformed entries are skipped.
    """
    merged: Dict[str, List[int]] = {}
    for entry in entries or ():
        if not isinstance(entry, dict) or not entry.get("topic_id"):
            continue
        seq_nos = merged.setdefault(str(entry["topic_id"]), [])
        for raw in entry.get(seq_field) or ():
            seq_no = _as_seq_no(raw)
            if seq_no is not None and seq_no not in seq_nos:
                seq_nos.append(seq_no)

    return [
        {"topic_id": topic_id, CURRENT_SEQ_FIELD: seq_nos}
        for topic_id, seq_nos in merged.items()
        if seq_nos
    ]


def needs_migration(bookmarks: Optional[List[Any]], legacy: Optional[List[Any]]) -> bool:
    """True only when the current field is empty and the legacy one is not."""
    return not bookmarks and bool(legacy)


def migrate_legacy(legacy: Optional[Iterable[Any]]) -> List[Dict[str, Any]]:
    """
    Rewrite legacy entries into the current shape.

    >>> migrate_legacy([{"topic_id": "t1", "bookmarked": [3, 1, 3]}])
    [{'topic_id': 't1', 'bookmarked_seq_nos': [3, 1]}]
    """
    return merge_entries(legacy, seq_field=LEGACY_SEQ_FIELD)
