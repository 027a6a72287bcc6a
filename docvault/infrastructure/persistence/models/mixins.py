"""
SQLAlchemy mixins for common model patterns.

These mixins provide reusable column definitions so every table uses the
same id and timestamp conventions.

Note: Timestamps get a Python-side UTC default (microsecond precision, used
for "newest first" ordering) and a server-side default for raw inserts.
"""
from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from docvault.domain.lifecycle import utc_now
from docvault.shared.utils.generators import generate_id


class UuidMixin:
    """
    Mixin for models using a UUID string as primary key.

    Provides:
        - id: String primary key with automatic UUID4 generation
    """

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String(36), primary_key=True, default=generate_id)


class CreatedAtMixin:
    """
    Mixin for immutable rows.

    Provides:
        - created_at: Timestamp set on creation
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False
        )


class TimestampMixin(CreatedAtMixin):
    """
    Mixin for mutable rows.

    Provides:
        - created_at: Timestamp set on creation
        - updated_at: Timestamp refreshed on every modification
    """

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            default=utc_now,
            onupdate=utc_now,
            server_default=func.now(),
            nullable=False,
        )
