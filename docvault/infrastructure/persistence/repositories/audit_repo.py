from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.infrastructure.persistence.models.audit import DocumentAudit
from docvault.infrastructure.persistence.repositories.base import BaseRepository
from docvault.shared.enums import AuditAction


class AuditRepository(BaseRepository[DocumentAudit]):
    """Append-only store for the document audit trail."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, DocumentAudit)

    async def record(
        self,
        document_id: str,
        entity_type: str,
        action: AuditAction,
        actor_id: str | None,
        details: dict[str, Any] | None = None,
    ) -> DocumentAudit:
        """Add an audit row; it is flushed with the surrounding transaction."""
        entry = DocumentAudit(
            document_id=document_id,
            entity_type=entity_type,
            action=action.value,
            actor_id=actor_id,
            details=details or {},
        )
        self.db.add(entry)
        return entry

    async def list_for_document(
        self, document_id: str, skip: int = 0, limit: int = 100
    ) -> list[DocumentAudit]:
        """Audit entries for a document, newest first"""
        result = await self.db.execute(
            select(DocumentAudit)
            .where(DocumentAudit.document_id == document_id)
            .order_by(DocumentAudit.performed_at.desc(), DocumentAudit.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())
