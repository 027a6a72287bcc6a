from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from docvault.infrastructure.persistence.database import Base
from docvault.infrastructure.persistence.models.mixins import (CreatedAtMixin,
                                                                UuidMixin)


class DocumentVersion(UuidMixin, CreatedAtMixin, Base):
    """
    One committed, immutable version of a document.

    version_number is gapless per document starting at 1. content_ref is set
    when the bytes were already stored under another version's path (dedup);
    storage_path always records where this upload was staged.
    """

    __tablename__ = "document_versions"

    document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    filename: Mapped[str] = mapped_column(String, nullable=False)
    original_filename: Mapped[str] = mapped_column(String, nullable=False)
    mime_type: Mapped[str] = mapped_column(String, nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    storage_path: Mapped[str] = mapped_column(String, nullable=False)
    checksum: Mapped[str] = mapped_column(String(64), nullable=False)
    content_ref: Mapped[str | None] = mapped_column(String, nullable=True)
    uploaded_by: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("document_id", "version_number", name="uq_document_version_number"),
        Index("ix_document_versions_checksum", "checksum"),
    )

    @property
    def content_path(self) -> str:
        """Path of the bytes that hold this version's content"""
        return self.content_ref or self.storage_path

    @property
    def deduplicated(self) -> bool:
        return self.content_ref is not None
