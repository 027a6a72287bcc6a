"""
Document version ledger.

Owns the append-only version history of every document: reserves version
slots, commits them with gapless numbering, and is the single authority on
content deduplication. Dedup matches on checksum alone; a SHA-256 collision
would attribute one upload's content to another.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from docvault.application.dtos import CommitResult, PendingVersion
from docvault.domain.enums import DocumentStatus
from docvault.domain.exceptions import (DocumentNotFound, ValidationException,
                                        VersionConflict, VersionNotFound)
from docvault.domain.value_objects import Checksum
from docvault.infrastructure.persistence.models.document import Document
from docvault.infrastructure.persistence.models.document_version import DocumentVersion
from docvault.infrastructure.persistence.models.upload_reservation import UploadReservation
from docvault.infrastructure.persistence.repositories.document_repo import DocumentRepository
from docvault.infrastructure.persistence.repositories.version_repo import VersionRepository
from docvault.shared.enums import AuditAction
from docvault.shared.telemetry.tracing import add_span_attributes, traced
from docvault.shared.utils.generators import generate_id, sanitize_filename

logger = logging.getLogger(__name__)


def build_storage_path(document_id: str, version_number: int, version_id: str, filename: str) -> str:
    """documents/{document_id}/v{n}/{version_id}/{filename}"""
    return f"documents/{document_id}/v{version_number}/{version_id}/{filename}"


class VersionLedger:
    """Append-only version history with checksum deduplication."""

    def __init__(self, version_repo: VersionRepository, document_repo: DocumentRepository):
        self.versions = version_repo
        self.documents = document_repo

    async def _live_document(self, document_id: str) -> Document:
        document = await self.documents.get_by_id(document_id)
        if document is None or document.status == DocumentStatus.DELETED:
            raise DocumentNotFound(document_id)
        return document

    @traced("ledger.reserve_version")
    async def reserve_version(
        self,
        document_id: str,
        uploader_id: str,
        *,
        filename: str,
        mime_type: str,
        declared_size: int,
        original_filename: str | None = None,
    ) -> PendingVersion:
        """
        Reserve the next version slot of a document.

        The expected number is 1 + the count of committed versions. Two
        concurrent reservations can receive the same number; the second
        commit then fails with VersionConflict. The blob store is not touched.
        """
        await self._live_document(document_id)

        expected = await self.versions.count_committed(document_id) + 1
        version_id = generate_id()
        safe_name = sanitize_filename(filename)
        staging_target = build_storage_path(document_id, expected, version_id, safe_name)

        await self.versions.add_reservation(
            UploadReservation(
                id=version_id,
                document_id=document_id,
                version_number=expected,
                filename=safe_name,
                original_filename=original_filename or filename,
                mime_type=mime_type,
                declared_size=declared_size,
                storage_path=staging_target,
                uploaded_by=uploader_id,
            )
        )

        add_span_attributes(document_id=document_id, version_number=expected)
        logger.info(
            "Reserved version %d of document %s as %s", expected, document_id, version_id
        )
        return PendingVersion(
            version_id=version_id,
            document_id=document_id,
            expected_version_number=expected,
            staging_target=staging_target,
        )

    async def get_pending(self, version_id: str) -> UploadReservation | None:
        return await self.versions.get_reservation(version_id)

    @traced("ledger.commit_version")
    async def commit_version(
        self,
        version_id: str,
        *,
        filename: str | None = None,
        mime_type: str | None = None,
        size: int,
        storage_path: str,
        checksum: str,
    ) -> CommitResult:
        """
        Commit a reserved version.

        If any committed version, in any document, already has this checksum,
        the new version's content_ref points at the bytes of that version and
        the result is flagged deduplicated. The caller's storage_path is
        recorded either way.

        Committing an already committed version_id with the same checksum
        returns the existing record, so a retried confirm is safe.

        Raises:
            MalformedChecksum: If checksum is not SHA-256 hex
            VersionNotFound: Unknown reservation, or already committed with other content
            VersionConflict: The reserved number was committed concurrently
        """
        digest = Checksum(checksum).value
        if size < 0:
            raise ValidationException("size must be >= 0", "size")
        if not storage_path:
            raise ValidationException("storage_path is required", "storage_path")

        reservation = await self.versions.get_reservation(version_id)
        if reservation is None:
            existing = await self.versions.get_by_id(version_id)
            if existing is not None and existing.checksum == digest:
                logger.info("Version %s already committed; returning existing record", version_id)
                return CommitResult(version=existing, deduplicated=existing.deduplicated)
            raise VersionNotFound(version_id, reason="unknown or already committed")

        document = await self._live_document(reservation.document_id)

        if await self.versions.exists_number(document.id, reservation.version_number):
            logger.warning(
                "Version %d of document %s already committed; %s lost the race",
                reservation.version_number,
                document.id,
                version_id,
            )
            raise VersionConflict(document.id, reservation.version_number)

        # A failed flush expires the ORM objects; raise from plain values
        document_id, version_number = document.id, reservation.version_number

        hit = await self.versions.get_by_checksum(digest)
        content_ref = (hit.content_ref or hit.storage_path) if hit is not None else None

        version = DocumentVersion(
            id=version_id,
            document_id=document.id,
            version_number=reservation.version_number,
            filename=sanitize_filename(filename) if filename else reservation.filename,
            original_filename=reservation.original_filename,
            mime_type=mime_type or reservation.mime_type,
            size=size,
            storage_path=storage_path,
            checksum=digest,
            content_ref=content_ref,
            uploaded_by=reservation.uploaded_by,
        )
        try:
            version = await self.versions.create(version)
        except IntegrityError as e:
            logger.warning(
                "Version %d of document %s was committed concurrently", version_number, document_id
            )
            raise VersionConflict(document_id, version_number) from e

        await self.versions.delete_reservation(reservation)
        await self.versions.emit_custom_audit(
            version,
            AuditAction.VERSION_COMMITTED,
            {"storage_path": storage_path, "content_ref": content_ref},
        )

        deduplicated = content_ref is not None
        add_span_attributes(
            document_id=document.id,
            version_number=version.version_number,
            deduplicated=deduplicated,
        )
        logger.info(
            "Committed version %d of document %s (%s%s)",
            version.version_number,
            document.id,
            version_id,
            ", deduplicated" if deduplicated else "",
        )
        return CommitResult(version=version, deduplicated=deduplicated)

    async def list_versions(self, document_id: str) -> list[DocumentVersion]:
        """Committed versions, newest first"""
        await self._live_document(document_id)
        return await self.versions.list_for_document(document_id)

    async def latest_version(self, document_id: str) -> DocumentVersion | None:
        await self._live_document(document_id)
        return await self.versions.latest_for_document(document_id)

    async def get_version(self, version_id: str) -> DocumentVersion:
        version = await self.versions.get_by_id(version_id)
        if version is None:
            raise VersionNotFound(version_id)
        await self._live_document(version.document_id)
        return version

    async def find_by_checksum(self, checksum: str) -> DocumentVersion | None:
        """Oldest committed version carrying this checksum, across all documents"""
        return await self.versions.get_by_checksum(Checksum(checksum).value)

    async def expire_stale_reservations(self, older_than: datetime) -> int:
        """Drop reservations that were never confirmed"""
        removed = await self.versions.delete_stale_reservations(older_than)
        if removed:
            logger.info("Expired %d stale upload reservations", removed)
        return removed
