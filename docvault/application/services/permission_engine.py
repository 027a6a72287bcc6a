"""
Permission engine: grant, revoke and check of (user, document, capability).

Capabilities are ordered READ < WRITE < ADMIN. The document owner holds an
implicit ADMIN, and callers with the system ADMIN role pass every check.
"""

from __future__ import annotations

import logging

from docvault.application.interfaces.services import ICacheService
from docvault.domain.enums import Capability, DocumentStatus, UserRole
from docvault.domain.exceptions import (DocumentNotFound, Forbidden,
                                        ValidationException)
from docvault.domain.value_objects import CallerIdentity
from docvault.infrastructure.persistence.models.document import Document
from docvault.infrastructure.persistence.models.permission import DocumentPermission
from docvault.infrastructure.persistence.repositories.document_repo import DocumentRepository
from docvault.infrastructure.persistence.repositories.permission_repo import PermissionRepository
from docvault.shared.telemetry.tracing import add_span_attributes, traced

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000
_NO_GRANT = "none"


def _validate_page(skip: int, limit: int) -> None:
    if skip < 0:
        raise ValidationException("skip must be >= 0", "skip")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationException(f"limit must be between 1 and {MAX_PAGE_SIZE}", "limit")


class PermissionEngine:
    """Capability checks and grant management for documents."""

    def __init__(
        self,
        permission_repo: PermissionRepository,
        document_repo: DocumentRepository,
        cache: ICacheService | None = None,
        cache_ttl: int = 300,
    ):
        self.permissions = permission_repo
        self.documents = document_repo
        self.cache = cache
        self.cache_ttl = cache_ttl
        self._stale_keys: set[str] = set()

    @staticmethod
    def _cache_key(document_id: str, user_id: str) -> str:
        return f"permissions:{document_id}:{user_id}"

    async def _live_document(self, document_id: str) -> Document:
        document = await self.documents.get_by_id(document_id)
        if document is None or document.status == DocumentStatus.DELETED:
            raise DocumentNotFound(document_id)
        return document

    async def _granted_capability(self, document_id: str, user_id: str) -> Capability | None:
        """Explicit grant for the user, served from cache when available"""
        key = self._cache_key(document_id, user_id)
        if self.cache is not None:
            cached = await self.cache.get(key)
            if cached is not None:
                return None if cached == _NO_GRANT else Capability(cached)

        permission = await self.permissions.get(document_id, user_id)
        capability = permission.capability if permission else None

        if self.cache is not None:
            await self.cache.set(
                key, capability.value if capability else _NO_GRANT, ttl=self.cache_ttl
            )
        return capability

    async def _invalidate(self, document_id: str, user_id: str) -> None:
        if self.cache is not None:
            key = self._cache_key(document_id, user_id)
            self._stale_keys.add(key)
            await self.cache.delete(key)

    async def flush_invalidations(self) -> int:
        """
        Delete the keys invalidated by grant/revoke once more.

        Call after the transaction commits: a check running between the
        first delete and the commit may have cached the old grant.
        """
        if self.cache is None or not self._stale_keys:
            return 0
        keys, self._stale_keys = self._stale_keys, set()
        for key in keys:
            await self.cache.delete(key)
        return len(keys)

    async def forget_document(self, document_id: str) -> int:
        """Drop every cached check for a document; returns how many entries went"""
        if self.cache is None:
            return 0
        return await self.cache.delete_pattern(self._cache_key(document_id, "*"))

    @traced("permissions.check")
    async def check(
        self,
        document_id: str,
        user_id: str,
        required: Capability,
        *,
        role: UserRole = UserRole.USER,
    ) -> bool:
        """
        Whether the user holds at least the required capability.

        Raises:
            DocumentNotFound: If the document is absent or deleted
        """
        document = await self._live_document(document_id)

        if role == UserRole.ADMIN or document.owner_id == user_id:
            return True

        granted = await self._granted_capability(document_id, user_id)
        return granted is not None and granted.satisfies(required)

    async def require(
        self, document_id: str, caller: CallerIdentity, required: Capability
    ) -> None:
        """Raise Forbidden unless the caller holds the required capability"""
        if not await self.check(document_id, caller.user_id, required, role=caller.role):
            logger.warning(
                "Permission denied: user %s lacks %s on document %s",
                caller.user_id,
                required.value,
                document_id,
            )
            raise Forbidden(caller.user_id, f"document:{document_id}", required.value)

    @traced("permissions.grant")
    async def grant(
        self,
        document_id: str,
        grantee_id: str,
        capability: Capability,
        granted_by: CallerIdentity,
    ) -> DocumentPermission:
        """
        Grant (or replace) a capability.

        Raises:
            Forbidden: If the grantor lacks ADMIN on the document
            DocumentNotFound: If the document is absent or deleted
        """
        if not grantee_id:
            raise ValidationException("grantee_id is required", "grantee_id")

        await self.require(document_id, granted_by, Capability.ADMIN)

        permission = await self.permissions.upsert(
            document_id, grantee_id, capability, granted_by.user_id
        )
        await self._invalidate(document_id, grantee_id)

        add_span_attributes(document_id=document_id, capability=capability.value)
        logger.info(
            "Granted %s on document %s to %s (by %s)",
            capability.value,
            document_id,
            grantee_id,
            granted_by.user_id,
        )
        return permission

    @traced("permissions.revoke")
    async def revoke(
        self, document_id: str, grantee_id: str, revoked_by: CallerIdentity
    ) -> bool:
        """
        Remove a grant. Revoking a grant that does not exist is not an error.

        Returns:
            True if a grant was removed
        """
        await self.require(document_id, revoked_by, Capability.ADMIN)

        removed = await self.permissions.remove(document_id, grantee_id)
        await self._invalidate(document_id, grantee_id)

        if removed:
            logger.info(
                "Revoked permission on document %s from %s (by %s)",
                document_id,
                grantee_id,
                revoked_by.user_id,
            )
        return removed

    async def list_for_document(
        self, document_id: str, skip: int = 0, limit: int = 100
    ) -> list[DocumentPermission]:
        """Grants on a document, newest grant first"""
        _validate_page(skip, limit)
        await self._live_document(document_id)
        return await self.permissions.list_for_document(document_id, skip, limit)

    async def list_for_user(
        self, user_id: str, skip: int = 0, limit: int = 100
    ) -> list[DocumentPermission]:
        """Grants held by a user, newest grant first"""
        _validate_page(skip, limit)
        return await self.permissions.list_for_user(user_id, skip, limit)
