from __future__ import annotations

from typing import Any

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.domain.enums import DocumentStatus
from docvault.infrastructure.persistence.models.document import Document
from docvault.infrastructure.persistence.repositories.audit_repo import AuditRepository
from docvault.infrastructure.persistence.repositories.auditable_repo import AuditableRepository
from docvault.shared.enums import AuditAction


class DocumentRepository(AuditableRepository[Document]):
    """Repository for Document entity with automatic audit tracking."""

    def __init__(
        self,
        db: AsyncSession,
        audit_repo: AuditRepository | None = None,
        *,
        enable_audit: bool = True,
    ):
        super().__init__(db, Document, audit_repo, enable_audit=enable_audit)

    # Auditable implementation
    def _get_entity_type(self) -> str:
        return "document"

    def _get_document_id(self, obj: Document) -> str:
        return obj.id

    def _serialize_for_audit(self, obj: Document) -> dict[str, Any]:
        return {
            "id": obj.id,
            "owner_id": obj.owner_id,
            "status": obj.status.value,
            "latest_version_id": obj.latest_version_id,
            "latest_version_number": obj.latest_version_number,
        }

    async def get_for_update(self, document_id: str) -> Document | None:
        """Get a document, locking the row where the backend supports it"""
        result = await self.db.execute(
            select(Document).where(Document.id == document_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def change_status(
        self, document: Document, status: DocumentStatus, action: AuditAction
    ) -> Document:
        """Apply a status transition and record it under its own audit action"""
        previous = document.status
        document.status = status
        await self.db.flush()
        await self.emit_custom_audit(
            document, action, {"from": previous.value, "to": status.value}
        )
        return document

    async def advance_latest(
        self, document: Document, version_id: str, version_number: int
    ) -> bool:
        """
        Move the latest-version pointer forward.

        The pointer never moves back: a lower version_number is ignored.
        Not audited separately, the version commit carries its own entry.
        """
        if version_number <= (document.latest_version_number or 0):
            return False
        document.latest_version_id = version_id
        document.latest_version_number = version_number
        await self.db.flush()
        return True

    async def list_by_owner(
        self,
        owner_id: str,
        skip: int = 0,
        limit: int = 100,
        include_deleted: bool = False,
    ) -> list[Document]:
        """Documents owned by a user, newest first"""
        conditions = [Document.owner_id == owner_id]
        if not include_deleted:
            conditions.append(Document.status != DocumentStatus.DELETED)

        result = await self.db.execute(
            select(Document)
            .where(and_(*conditions))
            .order_by(Document.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())
