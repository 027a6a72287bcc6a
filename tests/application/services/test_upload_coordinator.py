"""Tests for the two-phase upload protocol"""
import hashlib

import pytest

from docvault.application.services.upload_coordinator import mime_type_allowed
from docvault.domain.enums import Capability, DocumentStatus
from docvault.domain.exceptions import (ChecksumMismatch, DocumentNotFound,
                                        Forbidden, MalformedChecksum,
                                        SizeMismatch, ValidationException,
                                        VersionNotFound)


def digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@pytest.fixture
def upload(services, blob_store, owner):
    """Initiate, stage the bytes and confirm; returns the ConfirmedUpload"""

    async def _upload(data: bytes, document_id: str | None = None, caller=owner, stage=True):
        initiated = await services.uploads.initiate_upload(
            document_id, "report.pdf", "application/pdf", len(data), caller
        )
        if stage:
            await blob_store.put(data, initiated.staging_target)
        return await services.uploads.confirm_upload(
            initiated.version_id, len(data), digest(data), initiated.staging_target, caller
        )

    return _upload


class TestMimeTypes:
    def test_wildcard_allows_everything(self):
        assert mime_type_allowed("application/pdf", ["*/*"])

    def test_family_wildcard(self):
        assert mime_type_allowed("image/png", ["image/*"])
        assert not mime_type_allowed("text/plain", ["image/*"])

    def test_exact_match_is_case_insensitive(self):
        assert mime_type_allowed("Application/PDF", ["application/pdf"])

    def test_rejects_malformed(self):
        assert not mime_type_allowed("pdf", ["*/*"])


class TestInitiate:
    async def test_creates_draft_document_without_id(self, services, owner):
        initiated = await services.uploads.initiate_upload(
            None, "report.pdf", "application/pdf", 10, owner
        )

        document = await services.catalog.get(initiated.document_id)
        assert document.owner_id == owner.user_id
        assert document.status == DocumentStatus.DRAFT
        assert initiated.version_number == 1
        assert initiated.staging_target.startswith(f"documents/{document.id}/v1/")

    async def test_existing_document_requires_write(self, services, owner, reader, writer):
        document = await services.catalog.create(owner.user_id)
        await services.permissions.grant(document.id, reader.user_id, Capability.READ, owner)
        await services.permissions.grant(document.id, writer.user_id, Capability.WRITE, owner)

        with pytest.raises(Forbidden):
            await services.uploads.initiate_upload(
                document.id, "a.txt", "text/plain", 1, reader
            )

        initiated = await services.uploads.initiate_upload(
            document.id, "a.txt", "text/plain", 1, writer
        )
        assert initiated.document_id == document.id

    async def test_unknown_document(self, services, owner):
        with pytest.raises(DocumentNotFound):
            await services.uploads.initiate_upload(
                "missing", "a.txt", "text/plain", 1, owner
            )

    @pytest.mark.parametrize(
        "filename,mime_type,size",
        [
            ("", "text/plain", 1),
            ("a.txt", "text/plain", -1),
            ("a.txt", "text/plain", 100 * 1024 * 1024 + 1),
            ("a.txt", "not-a-mime", 1),
        ],
    )
    async def test_rejects_invalid_intent(self, services, owner, filename, mime_type, size):
        with pytest.raises(ValidationException):
            await services.uploads.initiate_upload(None, filename, mime_type, size, owner)

    async def test_disallowed_mime_type(self, services, settings, owner):
        settings.allowed_mime_types = "application/pdf,image/*"

        with pytest.raises(ValidationException) as exc_info:
            await services.uploads.initiate_upload(None, "a.txt", "text/plain", 1, owner)

        assert exc_info.value.details["field"] == "mime_type"

    async def test_filename_is_sanitized_in_staging_target(self, services, owner):
        initiated = await services.uploads.initiate_upload(
            None, "../../etc/passwd", "text/plain", 1, owner
        )

        assert ".." not in initiated.staging_target
        assert initiated.staging_target.endswith("/passwd")


class TestConfirm:
    async def test_confirm_commits_and_advances_latest(self, services, upload):
        confirmed = await upload(b"first upload")

        document = await services.catalog.get(confirmed.document_id)
        assert confirmed.version_number == 1
        assert confirmed.deduplicated is False
        assert document.latest_version_id == confirmed.version_id
        assert document.latest_version_number == 1

    async def test_second_upload_is_version_two(self, services, upload):
        first = await upload(b"one")
        second = await upload(b"two", document_id=first.document_id)

        assert second.version_number == 2
        document = await services.catalog.get(first.document_id)
        assert document.latest_version_id == second.version_id

    async def test_size_mismatch(self, services, owner):
        initiated = await services.uploads.initiate_upload(
            None, "a.txt", "text/plain", 10, owner
        )

        with pytest.raises(SizeMismatch):
            await services.uploads.confirm_upload(
                initiated.version_id, 11, digest(b"x" * 11), initiated.staging_target, owner
            )

        # The reservation survives a rejected confirm
        assert await services.ledger.get_pending(initiated.version_id) is not None

    async def test_staged_bytes_are_verified(self, services, blob_store, owner):
        """
        GIVEN staged bytes in the blob store
        WHEN the confirm declares a checksum of different content
        THEN ChecksumMismatch is raised and nothing is committed
        """
        data = b"actual bytes"
        initiated = await services.uploads.initiate_upload(
            None, "a.txt", "text/plain", len(data), owner
        )
        await blob_store.put(data, initiated.staging_target)

        with pytest.raises(ChecksumMismatch):
            await services.uploads.confirm_upload(
                initiated.version_id,
                len(data),
                digest(b"other bytes!"),
                initiated.staging_target,
                owner,
            )

        assert await services.ledger.list_versions(initiated.document_id) == []

    async def test_verification_can_be_disabled(self, services, settings, blob_store, owner):
        settings.verify_staged_checksum = False
        data = b"actual bytes"
        initiated = await services.uploads.initiate_upload(
            None, "a.txt", "text/plain", len(data), owner
        )
        await blob_store.put(data, initiated.staging_target)

        confirmed = await services.uploads.confirm_upload(
            initiated.version_id,
            len(data),
            digest(b"other bytes!"),
            initiated.staging_target,
            owner,
        )
        assert confirmed.version_number == 1

    async def test_unstaged_bytes_skip_verification(self, upload):
        confirmed = await upload(b"never staged", stage=False)

        assert confirmed.version_number == 1

    async def test_malformed_checksum(self, services, owner):
        initiated = await services.uploads.initiate_upload(
            None, "a.txt", "text/plain", 1, owner
        )

        with pytest.raises(MalformedChecksum):
            await services.uploads.confirm_upload(
                initiated.version_id, 1, "abc", initiated.staging_target, owner
            )

    async def test_confirm_requires_write(self, services, owner, stranger):
        initiated = await services.uploads.initiate_upload(
            None, "a.txt", "text/plain", 1, owner
        )

        with pytest.raises(Forbidden):
            await services.uploads.confirm_upload(
                initiated.version_id, 1, digest(b"x"), initiated.staging_target, stranger
            )

    async def test_unknown_version(self, services, owner):
        with pytest.raises(VersionNotFound):
            await services.uploads.confirm_upload(
                "missing", 1, digest(b"x"), "documents/x/v1/y/a.txt", owner
            )

    async def test_retry_returns_same_version(self, services, blob_store, owner, stranger):
        data = b"retried"
        initiated = await services.uploads.initiate_upload(
            None, "a.txt", "text/plain", len(data), owner
        )
        await blob_store.put(data, initiated.staging_target)
        args = (initiated.version_id, len(data), digest(data), initiated.staging_target)

        first = await services.uploads.confirm_upload(*args, owner)
        second = await services.uploads.confirm_upload(*args, owner)

        assert second.version_id == first.version_id
        assert second.version_number == first.version_number
        with pytest.raises(Forbidden):
            await services.uploads.confirm_upload(*args, stranger)


class TestDeduplication:
    async def test_identical_content_is_deduplicated(self, services, upload):
        first = await upload(b"same bytes")
        second = await upload(b"same bytes")

        assert second.document_id != first.document_id
        assert second.deduplicated is True

        original = await services.ledger.get_version(first.version_id)
        duplicate = await services.ledger.get_version(second.version_id)
        assert duplicate.content_ref == original.storage_path
        assert duplicate.content_path == original.storage_path

    async def test_discard_staged_bytes(self, services, blob_store, owner, upload):
        await upload(b"same bytes")
        data = b"same bytes"
        initiated = await services.uploads.initiate_upload(
            None, "copy.pdf", "application/pdf", len(data), owner
        )
        await blob_store.put(data, initiated.staging_target)
        confirmed = await services.uploads.confirm_upload(
            initiated.version_id, len(data), digest(data), initiated.staging_target, owner
        )
        assert confirmed.deduplicated

        await services.uploads.discard_staged_bytes(initiated.staging_target)

        assert not await blob_store.exists(initiated.staging_target)
