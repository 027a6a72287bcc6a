"""
Download token manager.

Issues single-use, short-lived capability tokens for one document version and
consumes them. Permissions are checked at issuance only; validation depends on
token state alone.

State machine: ISSUED -> CONSUMED | ISSUED -> EXPIRED. Nothing leaves
CONSUMED or EXPIRED.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from docvault.application.dtos import ResolvedDownload
from docvault.application.interfaces.services import IPermissionChecker
from docvault.domain.enums import Capability, DocumentStatus, TokenStatus
from docvault.domain.exceptions import (DocumentNotFound, TokenAlreadyUsed,
                                        TokenExpired, TokenNotFound,
                                        VersionNotFound)
from docvault.domain.lifecycle import (clamp_ttl, compute_expiry, ensure_aware,
                                       is_expired, utc_now)
from docvault.domain.value_objects import CallerIdentity, token_hint
from docvault.infrastructure.config.settings import Settings
from docvault.infrastructure.persistence.models.document import Document
from docvault.infrastructure.persistence.models.document_version import DocumentVersion
from docvault.infrastructure.persistence.models.download_token import DownloadToken
from docvault.infrastructure.persistence.repositories.document_repo import DocumentRepository
from docvault.infrastructure.persistence.repositories.download_token_repo import (
    DownloadTokenRepository,
)
from docvault.infrastructure.persistence.repositories.version_repo import VersionRepository
from docvault.shared.enums import AuditAction
from docvault.shared.telemetry.tracing import add_span_attributes, traced
from docvault.shared.utils.generators import generate_download_token

logger = logging.getLogger(__name__)


class DownloadTokenManager:
    """Issue, validate-and-consume, and sweep download tokens."""

    def __init__(
        self,
        token_repo: DownloadTokenRepository,
        version_repo: VersionRepository,
        document_repo: DocumentRepository,
        permissions: IPermissionChecker,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.tokens = token_repo
        self.versions = version_repo
        self.documents = document_repo
        self.permissions = permissions
        self.settings = settings
        self.clock = clock

    async def _live_document(self, document_id: str) -> Document:
        document = await self.documents.get_by_id(document_id)
        if document is None or document.status == DocumentStatus.DELETED:
            raise DocumentNotFound(document_id)
        return document

    async def _resolve_version(self, document_id: str, version_id: str | None) -> DocumentVersion:
        """Explicit version must belong to the document; absent means latest now"""
        if version_id is None:
            latest = await self.versions.latest_for_document(document_id)
            if latest is None:
                raise VersionNotFound(document_id, reason="document has no committed versions")
            return latest

        version = await self.versions.get_by_id(version_id)
        if version is None or version.document_id != document_id:
            raise VersionNotFound(version_id)
        return version

    @traced("tokens.issue")
    async def issue(
        self,
        document_id: str,
        version_id: str | None,
        issuer: CallerIdentity,
        ttl_seconds: int | None = None,
    ) -> DownloadToken:
        """
        Issue a download token.

        TTL defaults to the configured default and is silently clamped to
        the configured maximum.

        Raises:
            Forbidden: Unless the issuer holds READ
            VersionNotFound: Version unknown, foreign, or no versions yet
            ValidationException: Non-positive TTL
        """
        document = await self._live_document(document_id)
        await self.permissions.require(document_id, issuer, Capability.READ)

        ttl = clamp_ttl(
            ttl_seconds,
            self.settings.download_token_default_ttl_seconds,
            self.settings.download_token_max_ttl_seconds,
        )
        version = await self._resolve_version(document_id, version_id)

        now = self.clock()
        download_token = await self.tokens.create(
            DownloadToken(
                token=generate_download_token(),
                document_id=document_id,
                version_id=version.id,
                created_by=issuer.user_id,
                status=TokenStatus.ISSUED,
                expires_at=compute_expiry(ttl, now),
                created_at=now,
            )
        )
        await self.documents.emit_custom_audit(
            document,
            AuditAction.DOWNLOAD_LINK_GENERATED,
            {"version_id": version.id, "ttl_seconds": ttl},
        )

        add_span_attributes(document_id=document_id, version_id=version.id, ttl_seconds=ttl)
        logger.info(
            "Issued download token %s for document %s v%d (ttl %ss)",
            token_hint(download_token.token),
            document_id,
            version.version_number,
            ttl,
        )
        return download_token

    @traced("tokens.validate")
    async def validate(self, token: str) -> ResolvedDownload:
        """
        Validate and consume a token in one step.

        There is no way to check a token without consuming it.

        Raises:
            TokenNotFound: Unknown token
            TokenExpired: Past expiry; the token is marked EXPIRED
            TokenAlreadyUsed: Consumed earlier
            DocumentNotFound: The document was deleted since issuance
        """
        hint = token_hint(token or "")
        if not token:
            raise TokenNotFound(hint)

        now = self.clock()
        if not await self.tokens.consume(token, now):
            await self._raise_rejection(token, now)

        record = await self.tokens.get_by_token(token)
        if record is None or record.version_id is None:
            raise TokenNotFound(hint)

        document = await self._live_document(record.document_id)
        version = await self.versions.get_by_id(record.version_id)
        if version is None:
            raise VersionNotFound(record.version_id)

        await self.documents.emit_custom_audit(
            document,
            AuditAction.DOWNLOADED,
            {"version_id": version.id, "token_created_by": record.created_by},
        )
        logger.info(
            "Consumed download token %s for document %s v%d",
            hint,
            document.id,
            version.version_number,
        )
        return ResolvedDownload(
            document_id=document.id,
            version_id=version.id,
            storage_path=version.content_path,
        )

    async def _raise_rejection(self, token: str, now: datetime) -> None:
        """Work out why the conditional consume matched no row"""
        hint = token_hint(token)
        record = await self.tokens.get_by_token(token)
        if record is None:
            logger.warning("Rejected unknown download token %s", hint)
            raise TokenNotFound(hint)

        if record.status == TokenStatus.CONSUMED:
            logger.warning("Rejected reused download token %s", hint)
            raise TokenAlreadyUsed(hint, ensure_aware(record.used_at) if record.used_at else None)

        if record.status == TokenStatus.EXPIRED or is_expired(record.expires_at, now):
            await self.tokens.mark_expired(token)
            logger.warning("Rejected expired download token %s", hint)
            raise TokenExpired(hint, ensure_aware(record.expires_at))

        # Still ISSUED and unexpired: a concurrent validator consumed it first
        raise TokenAlreadyUsed(hint)

    @traced("tokens.cleanup_expired")
    async def cleanup_expired(self, now: datetime | None = None) -> int:
        """Delete every token whose expiry is before now, in any state"""
        removed = await self.tokens.delete_expired(now or self.clock())
        if removed:
            logger.info("Removed %d expired download tokens", removed)
        return removed
