from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from docvault.domain.lifecycle import utc_now
from docvault.infrastructure.persistence.database import Base
from docvault.infrastructure.persistence.models.mixins import UuidMixin


class DocumentAudit(UuidMixin, Base):
    """
    Append-only audit trail of actions taken on a document.

    No foreign key on document_id: audit rows outlive what they describe.
    """

    __tablename__ = "document_audit"

    document_id: Mapped[str] = mapped_column(String(36), nullable=False)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String, nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    performed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_document_audit_document", "document_id", "performed_at"),
    )
