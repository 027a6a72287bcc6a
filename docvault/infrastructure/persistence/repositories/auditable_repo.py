"""
Auditable Repository base class for automatic audit trail entries.

Extends BaseRepository with hooks that record a document_audit row for
creation of entities that belong to a document.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, TypeVar

from docvault.infrastructure.persistence.database import Base
from docvault.infrastructure.persistence.repositories.audit_repo import AuditRepository
from docvault.infrastructure.persistence.repositories.base import BaseRepository
from docvault.shared.context import get_current_actor_id
from docvault.shared.enums import AuditAction

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

ModelType = TypeVar("ModelType", bound=Base)

logger = logging.getLogger(__name__)


class AuditableRepository(BaseRepository[ModelType]):
    """
    Repository base class with automatic audit entries.

    Auditing is ENABLED BY DEFAULT.

    Subclasses must implement:
    - _get_entity_type(): Return the entity type string (e.g., "document")
    - _get_document_id(obj): Document the entity belongs to
    - _serialize_for_audit(obj): Convert entity to dict for the audit payload

    Optionally override:
    - _should_audit(): Return False to skip auditing for certain operations
    """

    def __init__(
        self,
        db: "AsyncSession",
        model: type[ModelType],
        audit_repo: AuditRepository | None = None,
        *,
        enable_audit: bool = True,
    ):
        super().__init__(db, model)
        self._audit_repo = audit_repo
        self._audit_enabled = enable_audit

    @property
    def audit_repo(self) -> AuditRepository | None:
        """Get the audit repository, lazily initializing if needed."""
        if self._audit_repo is None and self._audit_enabled:
            self._audit_repo = AuditRepository(self.db)
        return self._audit_repo

    @abstractmethod
    def _get_entity_type(self) -> str:
        """Return the entity type string for audit entries (e.g., 'document')."""
        ...

    @abstractmethod
    def _get_document_id(self, obj: ModelType) -> str:
        """Extract the owning document id from the entity."""
        ...

    @abstractmethod
    def _serialize_for_audit(self, obj: ModelType) -> dict[str, Any]:
        """Convert entity to dict for audit payload."""
        ...

    def _should_audit(self, action: AuditAction, obj: ModelType) -> bool:
        """Return whether this operation should be audited. Override to filter."""
        return True

    async def _emit_audit_event(
        self,
        action: AuditAction,
        obj: ModelType,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Record an audit entry for the given action and entity."""
        if not self._audit_enabled or not self._should_audit(action, obj):
            return

        repo = self.audit_repo
        if repo is None:
            return

        details = self._serialize_for_audit(obj)
        if metadata:
            details = {**details, **metadata}

        try:
            await repo.record(
                document_id=self._get_document_id(obj),
                entity_type=self._get_entity_type(),
                action=action,
                actor_id=get_current_actor_id(),
                details=details,
            )
        except Exception as e:
            # Log but don't fail the operation if auditing fails
            logger.warning(
                "Failed to record audit entry for %s.%s: %s",
                self._get_entity_type(),
                action.value,
                str(e),
            )

    async def _on_after_create(self, obj: ModelType) -> None:
        await super()._on_after_create(obj)
        await self._emit_audit_event(AuditAction.CREATED, obj)

    async def emit_custom_audit(
        self,
        obj: ModelType,
        action: AuditAction,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Record a custom audit entry (e.g., published, downloaded)."""
        await self._emit_audit_event(action, obj, metadata)
