from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.domain.enums import Capability
from docvault.domain.exceptions import GrantConflict
from docvault.domain.lifecycle import utc_now
from docvault.infrastructure.persistence.models.permission import DocumentPermission
from docvault.infrastructure.persistence.repositories.audit_repo import AuditRepository
from docvault.infrastructure.persistence.repositories.auditable_repo import AuditableRepository
from docvault.shared.enums import AuditAction
from docvault.shared.utils.generators import generate_id


class PermissionRepository(AuditableRepository[DocumentPermission]):
    """Repository for per-document permission grants with automatic audit tracking."""

    def __init__(
        self,
        db: AsyncSession,
        audit_repo: AuditRepository | None = None,
        *,
        enable_audit: bool = True,
    ):
        super().__init__(db, DocumentPermission, audit_repo, enable_audit=enable_audit)

    # Auditable implementation
    def _get_entity_type(self) -> str:
        return "permission"

    def _get_document_id(self, obj: DocumentPermission) -> str:
        return obj.document_id

    def _serialize_for_audit(self, obj: DocumentPermission) -> dict[str, Any]:
        return {
            "grantee_id": obj.grantee_id,
            "capability": obj.capability.value,
            "granted_by": obj.granted_by,
        }

    def _upsert_statement(self, values: dict[str, Any]):
        """INSERT ... ON CONFLICT (document_id, grantee_id) DO UPDATE for the bound dialect"""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            return None

        stmt = insert(DocumentPermission).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=["document_id", "grantee_id"],
            set_={
                "capability": stmt.excluded.capability,
                "granted_by": stmt.excluded.granted_by,
                "granted_at": stmt.excluded.granted_at,
            },
        )

    async def upsert(
        self,
        document_id: str,
        grantee_id: str,
        capability: Capability,
        granted_by: str,
        granted_at: datetime | None = None,
    ) -> DocumentPermission:
        """
        Create or replace the single grant for (document, grantee).

        Runs as one atomic statement so concurrent grants never produce
        duplicate rows.
        """
        values = {
            "id": generate_id(),
            "document_id": document_id,
            "grantee_id": grantee_id,
            "capability": capability,
            "granted_by": granted_by,
            "granted_at": granted_at or utc_now(),
        }
        stmt = self._upsert_statement(values)
        if stmt is not None:
            await self.db.execute(stmt)
        else:
            existing = await self.get(document_id, grantee_id, lock=True)
            if existing is None:
                self.db.add(DocumentPermission(**values))
            else:
                existing.capability = capability
                existing.granted_by = granted_by
                existing.granted_at = values["granted_at"]
            await self.db.flush()

        permission = await self.get(document_id, grantee_id, refresh=True)
        if permission is None:
            raise GrantConflict(document_id, grantee_id)
        await self.emit_custom_audit(permission, AuditAction.PERMISSION_GRANTED)
        return permission

    async def get(
        self,
        document_id: str,
        grantee_id: str,
        *,
        lock: bool = False,
        refresh: bool = False,
    ) -> DocumentPermission | None:
        query = select(DocumentPermission).where(
            and_(
                DocumentPermission.document_id == document_id,
                DocumentPermission.grantee_id == grantee_id,
            )
        )
        if lock:
            query = query.with_for_update()
        if refresh:
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def remove(self, document_id: str, grantee_id: str) -> bool:
        """Delete the grant if present; returns whether a row was removed"""
        existing = await self.get(document_id, grantee_id)
        if existing is None:
            return False

        await self.emit_custom_audit(existing, AuditAction.PERMISSION_REVOKED)
        result = await self.db.execute(
            delete(DocumentPermission)
            .where(DocumentPermission.id == existing.id)
            .execution_options(synchronize_session="fetch")
        )
        return (result.rowcount or 0) > 0

    async def list_for_document(
        self, document_id: str, skip: int = 0, limit: int = 100
    ) -> list[DocumentPermission]:
        """Grants on a document, most recent grant first"""
        result = await self.db.execute(
            select(DocumentPermission)
            .where(DocumentPermission.document_id == document_id)
            .order_by(DocumentPermission.granted_at.desc(), DocumentPermission.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_for_user(
        self, grantee_id: str, skip: int = 0, limit: int = 100
    ) -> list[DocumentPermission]:
        """Grants held by a user, most recent grant first"""
        result = await self.db.execute(
            select(DocumentPermission)
            .where(DocumentPermission.grantee_id == grantee_id)
            .order_by(DocumentPermission.granted_at.desc(), DocumentPermission.id)
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())
