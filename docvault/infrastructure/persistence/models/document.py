from sqlalchemy import Enum, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from docvault.domain.enums import DocumentStatus
from docvault.infrastructure.persistence.database import Base
from docvault.infrastructure.persistence.models.mixins import (TimestampMixin,
                                                                UuidMixin)


class Document(UuidMixin, TimestampMixin, Base):
    """
    Logical document: identity, owner, status and pointer to the latest version.

    Status transitions: DRAFT <-> PUBLISHED, {DRAFT, PUBLISHED} -> DELETED (terminal).
    """

    __tablename__ = "documents"

    owner_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus, native_enum=False, values_callable=lambda e: e.values()),
        nullable=False,
        default=DocumentStatus.DRAFT,
    )
    # Plain column: a foreign key here would form a cycle with document_versions
    latest_version_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    latest_version_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (Index("ix_documents_owner_status", "owner_id", "status"),)
