"""
Reusable mixins for database models.

This module provides:
- TimestampMixin: created_at and updated_at timestamps
"""

from datetime import UTC, datetime

from sqlalchemy.orm import Mapped, mapped_column

from models.types import TZDateTime


class TimestampMixin:
    """
    Mixin to add timestamp columns to models.

    Adds:
    - created_at: Timestamp when record was created (auto-set)
    - updated_at: Timestamp when record was last updated (auto-updated)

    Both timestamps use UTC timezone.

    Usage:
        class User(Base, TimestampMixin):
            __tablename__ = "users"
            email: Mapped[str]
    """

    created_at: Mapped[datetime] = mapped_column(
        TZDateTime(),
        nullable=False,
        default=lambda: datetime.now(UTC),
        index=True,
    )

    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime(),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )
