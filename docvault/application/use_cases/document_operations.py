"""
Transport-agnostic entry points of the document core.

Each call runs in its own database transaction: it commits when the call
returns and rolls back when it raises. The verified caller is placed in the
request context so audit entries carry the actor.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from docvault.application.interfaces.services import ICacheService, IHashService
from docvault.application.interfaces.storage import IBlobStore
from docvault.application.services.document_catalog import DocumentCatalog
from docvault.application.services.download_tokens import DownloadTokenManager
from docvault.application.services.hash_service import HashService
from docvault.application.services.permission_engine import PermissionEngine
from docvault.application.services.upload_coordinator import UploadCoordinator
from docvault.application.services.version_ledger import VersionLedger
from docvault.domain.enums import Capability
from docvault.domain.exceptions import NoVersionsYet, TokenExpired
from docvault.domain.lifecycle import ensure_aware, utc_now
from docvault.domain.value_objects import CallerIdentity
from docvault.infrastructure.config.settings import Settings
from docvault.infrastructure.persistence.database import Database
from docvault.infrastructure.persistence.errors import translate_db_errors
from docvault.infrastructure.persistence.repositories import (AuditRepository,
                                                              DocumentRepository,
                                                              DownloadTokenRepository,
                                                              PermissionRepository,
                                                              VersionRepository)
from docvault.schemas import (AuditEntryResponse, CleanupResponse,
                              ConfirmUploadResponse, ConsumedTokenResponse,
                              DocumentResponse, DownloadLinkResponse,
                              InitiateUploadResponse, PermissionResponse,
                              RevokeResponse, VersionResponse)
from docvault.shared.context import reset_current_actor, set_current_actor
from docvault.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)


@dataclass
class _Components:
    """Services bound to one session"""

    session: AsyncSession
    audit: AuditRepository
    permissions: PermissionEngine
    catalog: DocumentCatalog
    ledger: VersionLedger
    tokens: DownloadTokenManager
    uploads: UploadCoordinator


class DocumentOperations:
    """Facade over the upload, lifecycle, permission and download-token services."""

    def __init__(
        self,
        database: Database,
        settings: Settings,
        blob_store: IBlobStore,
        cache: ICacheService | None = None,
        hash_service: IHashService | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.database = database
        self.settings = settings
        self.blob_store = blob_store
        self.cache = cache
        self.hash_service = hash_service or HashService()
        self.clock = clock

    def _build(self, session: AsyncSession) -> _Components:
        audit_repo = AuditRepository(session)
        document_repo = DocumentRepository(session, audit_repo)
        version_repo = VersionRepository(session, audit_repo)
        permission_repo = PermissionRepository(session, audit_repo)
        token_repo = DownloadTokenRepository(session)

        permissions = PermissionEngine(
            permission_repo,
            document_repo,
            cache=self.cache,
            cache_ttl=self.settings.cache_ttl_permissions,
        )
        catalog = DocumentCatalog(document_repo, version_repo, permissions)
        ledger = VersionLedger(version_repo, document_repo)
        tokens = DownloadTokenManager(
            token_repo,
            version_repo,
            document_repo,
            permissions,
            self.settings,
            clock=self.clock,
        )
        uploads = UploadCoordinator(
            ledger, catalog, permissions, self.blob_store, self.hash_service, self.settings
        )
        return _Components(
            session=session,
            audit=audit_repo,
            permissions=permissions,
            catalog=catalog,
            ledger=ledger,
            tokens=tokens,
            uploads=uploads,
        )

    @asynccontextmanager
    async def _unit(
        self,
        operation: str,
        caller: CallerIdentity | None = None,
        *,
        commit_on: tuple[type[Exception], ...] = (),
    ) -> AsyncIterator[_Components]:
        """
        One transaction per operation.

        Exceptions listed in commit_on still commit the session before
        propagating, so state recorded while rejecting a request persists.
        Permission cache keys touched in the unit are dropped again after
        the commit.
        """
        actor = set_current_actor(caller)
        try:
            async with translate_db_errors(operation):
                async with self.database.session() as session:
                    components = self._build(session)
                    try:
                        yield components
                    except commit_on:
                        await session.commit()
                        await components.permissions.flush_invalidations()
                        raise
                    except BaseException:
                        await session.rollback()
                        raise
                    else:
                        await session.commit()
                        await components.permissions.flush_invalidations()
        finally:
            reset_current_actor(actor)

    def _download_url(self, token: str) -> str:
        base = (self.settings.storage_base_url or "").rstrip("/")
        prefix = "/" + self.settings.download_path_prefix.strip("/")
        return f"{base}{prefix}/{token}"

    # Uploads
    @traced("operations.initiate_upload")
    async def initiate_upload(
        self,
        caller: CallerIdentity,
        filename: str,
        mime_type: str,
        size: int,
        document_id: str | None = None,
    ) -> InitiateUploadResponse:
        async with self._unit("initiate_upload", caller) as c:
            initiated = await c.uploads.initiate_upload(
                document_id, filename, mime_type, size, caller
            )
        return InitiateUploadResponse(
            version_id=initiated.version_id,
            document_id=initiated.document_id,
            version_number=initiated.version_number,
            staging_target=initiated.staging_target,
        )

    @traced("operations.confirm_upload")
    async def confirm_upload(
        self,
        caller: CallerIdentity,
        version_id: str,
        actual_size: int,
        checksum: str,
        storage_path: str,
        *,
        discard_duplicate: bool = False,
    ) -> ConfirmUploadResponse:
        """
        Confirm a staged upload.

        With discard_duplicate the staged bytes are deleted after a
        deduplicated commit; otherwise the caller decides.
        """
        async with self._unit("confirm_upload", caller) as c:
            confirmed = await c.uploads.confirm_upload(
                version_id, actual_size, checksum, storage_path, caller
            )

        if confirmed.deduplicated and discard_duplicate:
            async with self._unit("discard_staged_bytes", caller) as c:
                await c.uploads.discard_staged_bytes(storage_path)

        return ConfirmUploadResponse(
            document_id=confirmed.document_id,
            version_id=confirmed.version_id,
            version_number=confirmed.version_number,
            deduplicated=confirmed.deduplicated,
        )

    # Document lifecycle
    @traced("operations.publish")
    async def publish(self, caller: CallerIdentity, document_id: str) -> DocumentResponse:
        async with self._unit("publish", caller) as c:
            document = await c.catalog.publish(document_id, caller)
        return DocumentResponse.model_validate(document)

    @traced("operations.unpublish")
    async def unpublish(self, caller: CallerIdentity, document_id: str) -> DocumentResponse:
        async with self._unit("unpublish", caller) as c:
            document = await c.catalog.unpublish(document_id, caller)
        return DocumentResponse.model_validate(document)

    @traced("operations.delete_document")
    async def delete_document(self, caller: CallerIdentity, document_id: str) -> DocumentResponse:
        async with self._unit("delete_document", caller) as c:
            document = await c.catalog.delete(document_id, caller)
            await c.permissions.forget_document(document_id)
        return DocumentResponse.model_validate(document)

    async def get_document(self, caller: CallerIdentity, document_id: str) -> DocumentResponse:
        async with self._unit("get_document", caller) as c:
            document = await c.catalog.get(document_id)
            await c.permissions.require(document_id, caller, Capability.READ)
        return DocumentResponse.model_validate(document)

    async def list_owned_documents(
        self, caller: CallerIdentity, skip: int = 0, limit: int = 100
    ) -> list[DocumentResponse]:
        async with self._unit("list_owned_documents", caller) as c:
            documents = await c.catalog.list_owned(caller.user_id, skip, limit)
        return [DocumentResponse.model_validate(d) for d in documents]

    # Versions
    async def list_versions(
        self, caller: CallerIdentity, document_id: str
    ) -> list[VersionResponse]:
        async with self._unit("list_versions", caller) as c:
            await c.permissions.require(document_id, caller, Capability.READ)
            versions = await c.ledger.list_versions(document_id)
        return [VersionResponse.model_validate(v) for v in versions]

    async def get_version(self, caller: CallerIdentity, version_id: str) -> VersionResponse:
        async with self._unit("get_version", caller) as c:
            version = await c.ledger.get_version(version_id)
            await c.permissions.require(version.document_id, caller, Capability.READ)
        return VersionResponse.model_validate(version)

    async def get_latest_version(
        self, caller: CallerIdentity, document_id: str
    ) -> VersionResponse:
        async with self._unit("get_latest_version", caller) as c:
            await c.permissions.require(document_id, caller, Capability.READ)
            version = await c.ledger.latest_version(document_id)
            if version is None:
                raise NoVersionsYet(document_id)
        return VersionResponse.model_validate(version)

    async def get_audit_trail(
        self, caller: CallerIdentity, document_id: str, skip: int = 0, limit: int = 100
    ) -> list[AuditEntryResponse]:
        async with self._unit("get_audit_trail", caller) as c:
            await c.permissions.require(document_id, caller, Capability.ADMIN)
            entries = await c.audit.list_for_document(document_id, skip, limit)
        return [AuditEntryResponse.model_validate(e) for e in entries]

    # Permissions
    @traced("operations.grant_permission")
    async def grant_permission(
        self,
        caller: CallerIdentity,
        document_id: str,
        grantee_id: str,
        capability: Capability | str,
    ) -> PermissionResponse:
        async with self._unit("grant_permission", caller) as c:
            permission = await c.permissions.grant(
                document_id, grantee_id, Capability.parse(capability), caller
            )
        return PermissionResponse.model_validate(permission)

    @traced("operations.revoke_permission")
    async def revoke_permission(
        self, caller: CallerIdentity, document_id: str, grantee_id: str
    ) -> RevokeResponse:
        async with self._unit("revoke_permission", caller) as c:
            revoked = await c.permissions.revoke(document_id, grantee_id, caller)
        return RevokeResponse(revoked=revoked)

    async def check_permission(
        self, caller: CallerIdentity, document_id: str, capability: Capability | str
    ) -> bool:
        async with self._unit("check_permission", caller) as c:
            return await c.permissions.check(
                document_id, caller.user_id, Capability.parse(capability), role=caller.role
            )

    async def list_document_permissions(
        self, caller: CallerIdentity, document_id: str, skip: int = 0, limit: int = 100
    ) -> list[PermissionResponse]:
        async with self._unit("list_document_permissions", caller) as c:
            await c.permissions.require(document_id, caller, Capability.ADMIN)
            permissions = await c.permissions.list_for_document(document_id, skip, limit)
        return [PermissionResponse.model_validate(p) for p in permissions]

    async def list_user_permissions(
        self, caller: CallerIdentity, skip: int = 0, limit: int = 100
    ) -> list[PermissionResponse]:
        """Grants held by the caller"""
        async with self._unit("list_user_permissions", caller) as c:
            permissions = await c.permissions.list_for_user(caller.user_id, skip, limit)
        return [PermissionResponse.model_validate(p) for p in permissions]

    # Download tokens
    @traced("operations.issue_download_token")
    async def issue_download_token(
        self,
        caller: CallerIdentity,
        document_id: str,
        version_id: str | None = None,
        ttl_seconds: int | None = None,
    ) -> DownloadLinkResponse:
        async with self._unit("issue_download_token", caller) as c:
            token = await c.tokens.issue(document_id, version_id, caller, ttl_seconds)
        return DownloadLinkResponse(
            token=token.token,
            expires_at=ensure_aware(token.expires_at),
            download_url=self._download_url(token.token),
            document_id=token.document_id,
            version_id=token.version_id or "",
        )

    @traced("operations.consume_download_token")
    async def consume_download_token(self, token: str) -> ConsumedTokenResponse:
        """Validate and consume a token; the token itself is the credential"""
        async with self._unit("consume_download_token", commit_on=(TokenExpired,)) as c:
            resolved = await c.tokens.validate(token)
        return ConsumedTokenResponse(
            document_id=resolved.document_id,
            version_id=resolved.version_id,
            storage_path=resolved.storage_path,
        )

    # Maintenance
    @traced("operations.cleanup_expired_tokens")
    async def cleanup_expired_tokens(self) -> CleanupResponse:
        async with self._unit("cleanup_expired_tokens") as c:
            deleted = await c.tokens.cleanup_expired()
        return CleanupResponse(deleted_count=deleted)

    async def expire_stale_reservations(self) -> int:
        """Drop upload reservations older than the reservation TTL"""
        cutoff = self.clock() - timedelta(seconds=self.settings.reservation_ttl_seconds)
        async with self._unit("expire_stale_reservations") as c:
            return await c.ledger.expire_stale_reservations(cutoff)
