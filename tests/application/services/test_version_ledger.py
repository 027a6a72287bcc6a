"""Tests for the document version ledger"""
import hashlib
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError

from docvault.domain.enums import DocumentStatus
from docvault.domain.exceptions import (DocumentNotFound, MalformedChecksum,
                                        VersionConflict, VersionNotFound)
from docvault.infrastructure.persistence.models.document import Document


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@pytest.fixture
async def document(services, owner) -> Document:
    return await services.catalog.create(owner.user_id)


class TestReserveVersion:
    async def test_first_reservation_is_version_one(self, services, document, owner):
        pending = await services.ledger.reserve_version(
            document.id, owner.user_id, filename="report.pdf", mime_type="application/pdf", declared_size=10
        )

        assert pending.expected_version_number == 1
        assert pending.document_id == document.id
        assert pending.staging_target == (
            f"documents/{document.id}/v1/{pending.version_id}/report.pdf"
        )

    async def test_next_number_counts_committed_versions(
        self, services, document, owner, add_version
    ):
        await add_version(document.id, owner.user_id, b"one")
        await add_version(document.id, owner.user_id, b"two")

        pending = await services.ledger.reserve_version(
            document.id, owner.user_id, filename="c.txt", mime_type="text/plain", declared_size=1
        )

        assert pending.expected_version_number == 3

    async def test_filename_is_sanitized_in_staging_target(self, services, document, owner):
        pending = await services.ledger.reserve_version(
            document.id,
            owner.user_id,
            filename="../../etc/passwd",
            mime_type="text/plain",
            declared_size=1,
        )

        assert ".." not in pending.staging_target
        assert pending.staging_target.endswith("/passwd")

    async def test_unknown_document(self, services, owner):
        with pytest.raises(DocumentNotFound):
            await services.ledger.reserve_version(
                "missing", owner.user_id, filename="a", mime_type="text/plain", declared_size=1
            )


class TestCommitVersion:
    async def test_commit_records_version(self, services, document, owner):
        data = b"quarterly numbers"
        pending = await services.ledger.reserve_version(
            document.id, owner.user_id, filename="q.csv", mime_type="text/csv", declared_size=len(data)
        )

        result = await services.ledger.commit_version(
            pending.version_id,
            size=len(data),
            storage_path=pending.staging_target,
            checksum=sha256_hex(data).upper(),
        )

        version = result.version
        assert result.deduplicated is False
        assert version.id == pending.version_id
        assert version.version_number == 1
        assert version.checksum == sha256_hex(data)
        assert version.content_ref is None
        assert version.storage_path == pending.staging_target
        assert version.uploaded_by == owner.user_id
        assert await services.ledger.get_pending(pending.version_id) is None

    async def test_identical_content_is_deduplicated_across_documents(
        self, services, owner, writer, add_version
    ):
        """
        GIVEN bytes already committed under one document
        WHEN the same bytes are committed to another document
        THEN the new version points at the first version's path and is flagged deduplicated
        """
        first_doc = await services.catalog.create(owner.user_id)
        second_doc = await services.catalog.create(writer.user_id)
        first = await add_version(first_doc.id, owner.user_id, b"same bytes")

        second = await add_version(second_doc.id, writer.user_id, b"same bytes")

        assert second.deduplicated is True
        assert second.version.content_ref == first.version.storage_path
        assert second.version.storage_path != first.version.storage_path
        assert second.version.content_path == first.version.storage_path

    async def test_dedup_chain_points_at_original_bytes(self, services, document, owner, add_version):
        first = await add_version(document.id, owner.user_id, b"abc")
        await add_version(document.id, owner.user_id, b"abc")

        third = await add_version(document.id, owner.user_id, b"abc")

        assert third.version.content_ref == first.version.storage_path
        assert third.version.version_number == 3

    async def test_retry_of_committed_version_is_idempotent(self, services, document, owner):
        data = b"payload"
        pending = await services.ledger.reserve_version(
            document.id, owner.user_id, filename="p", mime_type="text/plain", declared_size=len(data)
        )
        kwargs = dict(size=len(data), storage_path=pending.staging_target, checksum=sha256_hex(data))
        first = await services.ledger.commit_version(pending.version_id, **kwargs)

        retried = await services.ledger.commit_version(pending.version_id, **kwargs)

        assert retried.version.id == first.version.id
        assert retried.version.version_number == 1
        assert len(await services.ledger.list_versions(document.id)) == 1

    async def test_recommit_with_other_content_is_not_found(self, services, document, owner):
        pending = await services.ledger.reserve_version(
            document.id, owner.user_id, filename="p", mime_type="text/plain", declared_size=1
        )
        await services.ledger.commit_version(
            pending.version_id, size=1, storage_path="x", checksum=sha256_hex(b"1")
        )

        with pytest.raises(VersionNotFound):
            await services.ledger.commit_version(
                pending.version_id, size=1, storage_path="x", checksum=sha256_hex(b"2")
            )

    async def test_unknown_reservation(self, services):
        with pytest.raises(VersionNotFound):
            await services.ledger.commit_version(
                "no-such-version", size=1, storage_path="x", checksum=sha256_hex(b"x")
            )

    async def test_malformed_checksum(self, services, document, owner):
        pending = await services.ledger.reserve_version(
            document.id, owner.user_id, filename="p", mime_type="text/plain", declared_size=1
        )

        with pytest.raises(MalformedChecksum):
            await services.ledger.commit_version(
                pending.version_id, size=1, storage_path="x", checksum="abc123"
            )

    async def test_concurrent_reservation_loses_with_version_conflict(
        self, services, document, owner
    ):
        """
        GIVEN two reservations that both expect version 1
        WHEN both are committed
        THEN the second commit fails with VersionConflict
        """
        first = await services.ledger.reserve_version(
            document.id, owner.user_id, filename="a", mime_type="text/plain", declared_size=1
        )
        second = await services.ledger.reserve_version(
            document.id, owner.user_id, filename="b", mime_type="text/plain", declared_size=1
        )
        assert first.expected_version_number == second.expected_version_number == 1

        await services.ledger.commit_version(
            first.version_id, size=1, storage_path=first.staging_target, checksum=sha256_hex(b"a")
        )

        with pytest.raises(VersionConflict) as exc_info:
            await services.ledger.commit_version(
                second.version_id, size=1, storage_path=second.staging_target, checksum=sha256_hex(b"b")
            )
        assert exc_info.value.details["version_number"] == 1

    async def test_unique_constraint_violation_is_version_conflict(
        self, services, document, owner, monkeypatch
    ):
        """
        GIVEN a commit whose number was taken after the pre-check passed
        WHEN the insert hits the unique (document, number) constraint
        THEN VersionConflict carries the document and number
        """
        first = await services.ledger.reserve_version(
            document.id, owner.user_id, filename="a", mime_type="text/plain", declared_size=1
        )
        second = await services.ledger.reserve_version(
            document.id, owner.user_id, filename="b", mime_type="text/plain", declared_size=1
        )
        document_id = document.id
        await services.ledger.commit_version(
            first.version_id, size=1, storage_path=first.staging_target, checksum=sha256_hex(b"a")
        )
        monkeypatch.setattr(services.ledger.versions, "exists_number", AsyncMock(return_value=False))

        with pytest.raises(VersionConflict) as exc_info:
            await services.ledger.commit_version(
                second.version_id, size=1, storage_path=second.staging_target, checksum=sha256_hex(b"b")
            )

        assert exc_info.value.details == {"document_id": document_id, "version_number": 1}
        assert isinstance(exc_info.value.__cause__, IntegrityError)


class TestVersionQueries:
    async def test_list_versions_newest_first(self, services, document, owner, add_version):
        for data in (b"v1", b"v2", b"v3"):
            await add_version(document.id, owner.user_id, data)

        versions = await services.ledger.list_versions(document.id)

        assert [v.version_number for v in versions] == [3, 2, 1]

    async def test_latest_version_none_without_commits(self, services, document):
        assert await services.ledger.latest_version(document.id) is None

    async def test_latest_version(self, services, document, owner, add_version):
        await add_version(document.id, owner.user_id, b"v1")
        second = await add_version(document.id, owner.user_id, b"v2")

        latest = await services.ledger.latest_version(document.id)

        assert latest.id == second.version.id

    async def test_find_by_checksum_returns_oldest(self, services, owner, add_version):
        doc_a = await services.catalog.create(owner.user_id)
        doc_b = await services.catalog.create(owner.user_id)
        first = await add_version(doc_a.id, owner.user_id, b"shared")
        await add_version(doc_b.id, owner.user_id, b"shared")

        found = await services.ledger.find_by_checksum(sha256_hex(b"shared"))

        assert found.id == first.version.id

    async def test_find_by_checksum_miss(self, services):
        assert await services.ledger.find_by_checksum(sha256_hex(b"never stored")) is None

    async def test_versions_of_deleted_document_are_unreadable(
        self, services, document, owner, add_version
    ):
        committed = await add_version(document.id, owner.user_id, b"v1")
        await services.catalog.delete(document.id, owner)
        assert document.status == DocumentStatus.DELETED

        with pytest.raises(DocumentNotFound):
            await services.ledger.list_versions(document.id)
        with pytest.raises(DocumentNotFound):
            await services.ledger.get_version(committed.version.id)

    async def test_expire_stale_reservations(self, services, document, owner, clock):
        await services.ledger.reserve_version(
            document.id, owner.user_id, filename="a", mime_type="text/plain", declared_size=1
        )

        assert await services.ledger.expire_stale_reservations(clock.advance(hours=-1)) == 0
        assert await services.ledger.expire_stale_reservations(clock.advance(hours=2)) == 1
