from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.infrastructure.persistence.models.document_version import DocumentVersion
from docvault.infrastructure.persistence.models.upload_reservation import UploadReservation
from docvault.infrastructure.persistence.repositories.audit_repo import AuditRepository
from docvault.infrastructure.persistence.repositories.auditable_repo import AuditableRepository
from docvault.shared.enums import AuditAction


class VersionRepository(AuditableRepository[DocumentVersion]):
    """
    Repository for committed document versions and their upload reservations.

    Committed versions are immutable: there is no update path here.
    """

    def __init__(
        self,
        db: AsyncSession,
        audit_repo: AuditRepository | None = None,
        *,
        enable_audit: bool = True,
    ):
        super().__init__(db, DocumentVersion, audit_repo, enable_audit=enable_audit)

    # Auditable implementation
    def _get_entity_type(self) -> str:
        return "document_version"

    def _get_document_id(self, obj: DocumentVersion) -> str:
        return obj.document_id

    def _serialize_for_audit(self, obj: DocumentVersion) -> dict[str, Any]:
        return {
            "id": obj.id,
            "version_number": obj.version_number,
            "filename": obj.filename,
            "mime_type": obj.mime_type,
            "size": obj.size,
            "checksum": obj.checksum,
            "deduplicated": obj.content_ref is not None,
        }

    def _should_audit(self, action: AuditAction, obj: DocumentVersion) -> bool:
        # Creation is recorded by the ledger as version_committed
        return action != AuditAction.CREATED

    async def count_committed(self, document_id: str) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(DocumentVersion)
            .where(DocumentVersion.document_id == document_id)
        )
        return int(result.scalar_one())

    async def exists_number(self, document_id: str, version_number: int) -> bool:
        result = await self.db.execute(
            select(DocumentVersion.id).where(
                DocumentVersion.document_id == document_id,
                DocumentVersion.version_number == version_number,
            )
        )
        return result.first() is not None

    async def list_for_document(self, document_id: str) -> list[DocumentVersion]:
        """All committed versions of a document, newest first"""
        result = await self.db.execute(
            select(DocumentVersion)
            .where(DocumentVersion.document_id == document_id)
            .order_by(DocumentVersion.version_number.desc())
        )
        return list(result.scalars().all())

    async def latest_for_document(self, document_id: str) -> DocumentVersion | None:
        result = await self.db.execute(
            select(DocumentVersion)
            .where(DocumentVersion.document_id == document_id)
            .order_by(DocumentVersion.version_number.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_checksum(self, checksum: str) -> DocumentVersion | None:
        """Oldest committed version with this checksum, across all documents"""
        result = await self.db.execute(
            select(DocumentVersion)
            .where(DocumentVersion.checksum == checksum)
            .order_by(DocumentVersion.created_at.asc(), DocumentVersion.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    # Reservations
    async def add_reservation(self, reservation: UploadReservation) -> UploadReservation:
        self.db.add(reservation)
        await self.db.flush()
        return reservation

    async def get_reservation(self, reservation_id: str) -> UploadReservation | None:
        return await self.db.get(UploadReservation, reservation_id)

    async def delete_reservation(self, reservation: UploadReservation) -> None:
        await self.db.delete(reservation)
        await self.db.flush()

    async def delete_stale_reservations(self, older_than: datetime) -> int:
        """Remove reservations created before the cutoff, return how many"""
        result = await self.db.execute(
            delete(UploadReservation)
            .where(UploadReservation.created_at < older_than)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
