"""
Upload coordinator: the two-phase upload protocol.

1. initiate_upload reserves a version slot and hands back a staging target.
2. The caller writes the bytes to the blob store out of band.
3. confirm_upload verifies size (and, when enabled, the staged bytes'
   checksum), commits the version and advances the document's latest pointer.
"""

import logging

from docvault.application.dtos import ConfirmedUpload, InitiatedUpload
from docvault.application.interfaces.services import IHashService
from docvault.application.interfaces.storage import IBlobStore
from docvault.application.services.document_catalog import DocumentCatalog
from docvault.application.services.permission_engine import PermissionEngine
from docvault.application.services.version_ledger import VersionLedger
from docvault.domain.enums import Capability
from docvault.domain.exceptions import (ChecksumMismatch, SizeMismatch,
                                        ValidationException)
from docvault.domain.value_objects import CallerIdentity, Checksum
from docvault.infrastructure.config.settings import Settings
from docvault.shared.telemetry.tracing import add_span_attributes, traced

logger = logging.getLogger(__name__)


def mime_type_allowed(mime_type: str, allowed: list[str]) -> bool:
    """Match against exact types, "type/*" families and "*/*" """
    mime_type = mime_type.strip().lower()
    if "/" not in mime_type:
        return False
    family = mime_type.split("/", 1)[0]
    for pattern in allowed:
        if pattern in ("*/*", "*", mime_type) or pattern == f"{family}/*":
            return True
    return False


class UploadCoordinator:
    """Stateless orchestration over the ledger, catalog and permission engine."""

    def __init__(
        self,
        ledger: VersionLedger,
        catalog: DocumentCatalog,
        permissions: PermissionEngine,
        blob_store: IBlobStore,
        hash_service: IHashService,
        settings: Settings,
    ):
        self.ledger = ledger
        self.catalog = catalog
        self.permissions = permissions
        self.blob_store = blob_store
        self.hash_service = hash_service
        self.settings = settings

    def _validate_intent(self, filename: str, mime_type: str, declared_size: int) -> None:
        if not filename or not filename.strip():
            raise ValidationException("filename is required", "filename")
        if declared_size < 0:
            raise ValidationException("size must be >= 0", "size")
        if declared_size > self.settings.max_upload_size:
            raise ValidationException(
                f"size exceeds the maximum upload size of {self.settings.max_upload_size} bytes",
                "size",
            )
        if not mime_type_allowed(mime_type, self.settings.allowed_mime_type_list()):
            raise ValidationException(f"MIME type '{mime_type}' is not allowed", "mime_type")

    @traced("uploads.initiate")
    async def initiate_upload(
        self,
        document_id: str | None,
        filename: str,
        mime_type: str,
        declared_size: int,
        uploader: CallerIdentity,
    ) -> InitiatedUpload:
        """
        Start an upload.

        Without a document_id a new DRAFT document owned by the uploader is
        created; otherwise the uploader needs WRITE on the document.
        """
        self._validate_intent(filename, mime_type, declared_size)

        if document_id is None:
            document = await self.catalog.create(uploader.user_id)
        else:
            document = await self.catalog.get(document_id)
            await self.permissions.require(document.id, uploader, Capability.WRITE)

        pending = await self.ledger.reserve_version(
            document.id,
            uploader.user_id,
            filename=filename,
            mime_type=mime_type.strip().lower(),
            declared_size=declared_size,
            original_filename=filename,
        )
        return InitiatedUpload(
            version_id=pending.version_id,
            document_id=document.id,
            version_number=pending.expected_version_number,
            staging_target=pending.staging_target,
        )

    async def _verify_staged_bytes(
        self, version_id: str, storage_path: str, checksum: str, actual_size: int
    ) -> None:
        """Re-hash the staged blob when it is reachable through the blob store"""
        if not await self.blob_store.exists(storage_path):
            logger.debug("Staged blob %s not found; skipping content verification", storage_path)
            return

        data = await self.blob_store.get(storage_path)
        if len(data) != actual_size:
            raise SizeMismatch(version_id, actual_size, len(data))

        computed = self.hash_service.compute_hash(data)
        if computed != checksum:
            logger.error(
                "Checksum mismatch for staged upload %s at %s", version_id, storage_path
            )
            raise ChecksumMismatch(storage_path, checksum, computed)

    @traced("uploads.confirm")
    async def confirm_upload(
        self,
        version_id: str,
        actual_size: int,
        computed_checksum: str,
        storage_path: str,
        uploader: CallerIdentity,
    ) -> ConfirmedUpload:
        """
        Finish an upload.

        When deduplicated is True the staged bytes are redundant and may be
        removed with discard_staged_bytes().

        Raises:
            SizeMismatch: actual_size differs from the declared size
            ChecksumMismatch: staged bytes hash to something else
            VersionConflict: another confirm took this version number
            VersionNotFound: unknown version_id
        """
        checksum = Checksum(computed_checksum).value

        reservation = await self.ledger.get_pending(version_id)
        if reservation is not None:
            await self.permissions.require(reservation.document_id, uploader, Capability.WRITE)

            if actual_size != reservation.declared_size:
                logger.warning(
                    "Size mismatch for upload %s: declared %d, got %d",
                    version_id,
                    reservation.declared_size,
                    actual_size,
                )
                raise SizeMismatch(version_id, reservation.declared_size, actual_size)

            if self.settings.verify_staged_checksum:
                await self._verify_staged_bytes(version_id, storage_path, checksum, actual_size)

        result = await self.ledger.commit_version(
            version_id,
            size=actual_size,
            storage_path=storage_path,
            checksum=checksum,
        )
        version = result.version

        if reservation is None:
            # Idempotent retry: the caller must still be allowed to write
            await self.permissions.require(version.document_id, uploader, Capability.WRITE)

        document = await self.catalog.get(version.document_id)
        await self.catalog.advance_latest(document, version)

        add_span_attributes(document_id=document.id, deduplicated=result.deduplicated)
        return ConfirmedUpload(
            document_id=document.id,
            version_id=version.id,
            version_number=version.version_number,
            deduplicated=result.deduplicated,
        )

    async def discard_staged_bytes(self, storage_path: str) -> None:
        """Remove staged bytes made redundant by deduplication"""
        await self.blob_store.delete(storage_path)
        logger.info("Discarded deduplicated staged bytes at %s", storage_path)
