"""
Declarative base and shared column mixins for Cortex ORM models.

- ``Base``: SQLAlchemy 2.0 declarative base carrying the shared metadata
- ``IdMixin``: 32-char hex UUID string primary key
- ``TimestampMixin``: ``created_at`` / ``updated_at`` maintained on write
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class IdMixin:
    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        default=new_id,
        doc="Opaque hex identifier",
    )


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
