from sqlalchemy import BigInteger, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from docvault.infrastructure.persistence.database import Base
from docvault.infrastructure.persistence.models.mixins import (CreatedAtMixin,
                                                                UuidMixin)


class UploadReservation(UuidMixin, CreatedAtMixin, Base):
    """
    Pending version slot created by initiate_upload.

    The reservation id becomes the committed version's id. Reservations are
    deleted when the version commits or when they go stale.
    """

    __tablename__ = "upload_reservations"

    document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    filename: Mapped[str] = mapped_column(String, nullable=False)
    original_filename: Mapped[str] = mapped_column(String, nullable=False)
    mime_type: Mapped[str] = mapped_column(String, nullable=False)
    declared_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    storage_path: Mapped[str] = mapped_column(String, nullable=False)
    uploaded_by: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        Index("ix_upload_reservations_document", "document_id"),
        Index("ix_upload_reservations_created_at", "created_at"),
    )
