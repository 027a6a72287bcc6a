from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from docvault.domain.enums import TokenStatus
from docvault.infrastructure.persistence.database import Base
from docvault.infrastructure.persistence.models.mixins import (CreatedAtMixin,
                                                                UuidMixin)


class DownloadToken(UuidMixin, CreatedAtMixin, Base):
    """
    Single-use capability authorizing one download of one document version.

    version_id is resolved at issuance (latest version when the caller gave none)
    and never re-resolved.
    """

    __tablename__ = "download_tokens"

    token: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    version_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("document_versions.id", ondelete="CASCADE"), nullable=True
    )
    created_by: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[TokenStatus] = mapped_column(
        Enum(TokenStatus, native_enum=False, values_callable=lambda e: e.values()),
        nullable=False,
        default=TokenStatus.ISSUED,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_download_tokens_expires_at", "expires_at"),
        Index("ix_download_tokens_document", "document_id"),
    )
