from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from docvault.domain.enums import Capability
from docvault.domain.lifecycle import utc_now
from docvault.infrastructure.persistence.database import Base
from docvault.infrastructure.persistence.models.mixins import UuidMixin


class DocumentPermission(UuidMixin, Base):
    """
    Capability granted to one user on one document.

    At most one row per (document, grantee): re-granting replaces the capability
    and refreshes granted_at.
    """

    __tablename__ = "permissions"

    document_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False
    )
    grantee_id: Mapped[str] = mapped_column(String, nullable=False)
    capability: Mapped[Capability] = mapped_column(
        Enum(Capability, native_enum=False, values_callable=lambda e: e.values()),
        nullable=False,
    )
    granted_by: Mapped[str] = mapped_column(String, nullable=False)
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("document_id", "grantee_id", name="uq_permission_document_grantee"),
        Index("ix_permissions_grantee", "grantee_id", "granted_at"),
    )
