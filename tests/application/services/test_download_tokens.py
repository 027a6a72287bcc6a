"""Tests for the download token manager"""
from datetime import timedelta

import pytest

from docvault.domain.enums import Capability, TokenStatus
from docvault.domain.exceptions import (DocumentNotFound, Forbidden,
                                        TokenAlreadyUsed, TokenExpired,
                                        TokenNotFound, ValidationException,
                                        VersionNotFound)
from docvault.domain.lifecycle import ensure_aware


@pytest.fixture
async def document(services, owner):
    return await services.catalog.create(owner.user_id)


@pytest.fixture
async def version(document, owner, add_version):
    result = await add_version(document.id, owner.user_id, b"downloadable")
    return result.version


class TestIssue:
    async def test_issue_resolves_latest_version(
        self, services, document, version, owner, add_version, clock
    ):
        newer = await add_version(document.id, owner.user_id, b"newer")

        token = await services.tokens.issue(document.id, None, owner, ttl_seconds=60)

        assert token.version_id == newer.version.id
        assert token.status == TokenStatus.ISSUED
        assert ensure_aware(token.expires_at) == clock.now + timedelta(seconds=60)

    async def test_latest_is_frozen_at_issuance(
        self, services, document, version, owner, add_version
    ):
        """
        GIVEN a token issued without a version id
        WHEN a newer version is committed before consumption
        THEN the token still resolves to the version that was latest at issuance
        """
        token = await services.tokens.issue(document.id, None, owner)
        await add_version(document.id, owner.user_id, b"later")

        resolved = await services.tokens.validate(token.token)

        assert resolved.version_id == version.id

    async def test_token_value_is_random_and_long(self, services, document, version, owner):
        first = await services.tokens.issue(document.id, version.id, owner)
        second = await services.tokens.issue(document.id, version.id, owner)

        assert first.token != second.token
        assert len(first.token) >= 43
        assert document.id not in first.token

    async def test_ttl_defaults_and_is_clamped(self, services, document, version, owner, clock):
        default = await services.tokens.issue(document.id, version.id, owner)
        clamped = await services.tokens.issue(document.id, version.id, owner, ttl_seconds=10**7)

        assert ensure_aware(default.expires_at) == clock.now + timedelta(seconds=300)
        assert ensure_aware(clamped.expires_at) == clock.now + timedelta(hours=24)

    async def test_non_positive_ttl(self, services, document, version, owner):
        with pytest.raises(ValidationException):
            await services.tokens.issue(document.id, version.id, owner, ttl_seconds=0)

    async def test_issue_requires_read(self, services, document, version, owner, stranger, reader):
        with pytest.raises(Forbidden):
            await services.tokens.issue(document.id, version.id, stranger)

        await services.permissions.grant(document.id, reader.user_id, Capability.READ, owner)
        token = await services.tokens.issue(document.id, version.id, reader)
        assert token.created_by == reader.user_id

    async def test_no_versions_yet(self, services, document, owner):
        with pytest.raises(VersionNotFound):
            await services.tokens.issue(document.id, None, owner)

    async def test_version_of_another_document(self, services, version, owner):
        other = await services.catalog.create(owner.user_id)

        with pytest.raises(VersionNotFound):
            await services.tokens.issue(other.id, version.id, owner)


class TestValidate:
    async def test_single_use(self, services, document, version, owner):
        token = await services.tokens.issue(document.id, version.id, owner, ttl_seconds=60)

        resolved = await services.tokens.validate(token.token)
        assert resolved.document_id == document.id
        assert resolved.version_id == version.id
        assert resolved.storage_path == version.storage_path

        with pytest.raises(TokenAlreadyUsed):
            await services.tokens.validate(token.token)

    async def test_unknown_token(self, services):
        with pytest.raises(TokenNotFound):
            await services.tokens.validate("not-a-real-token-value")

    async def test_empty_token(self, services):
        with pytest.raises(TokenNotFound):
            await services.tokens.validate("")

    async def test_expiry_boundary(self, services, document, version, owner, clock):
        """
        GIVEN tokens expiring at T
        WHEN validated at T - 1ms and at T + 1ms
        THEN the first succeeds and the second fails with TokenExpired
        """
        issued_at = clock.now
        valid = await services.tokens.issue(document.id, version.id, owner, ttl_seconds=60)
        late = await services.tokens.issue(document.id, version.id, owner, ttl_seconds=60)
        expiry = issued_at + timedelta(seconds=60)

        clock.now = expiry - timedelta(milliseconds=1)
        assert (await services.tokens.validate(valid.token)).version_id == version.id

        clock.now = expiry + timedelta(milliseconds=1)
        with pytest.raises(TokenExpired):
            await services.tokens.validate(late.token)

    async def test_expired_token_is_marked_and_stays_expired(
        self, services, document, version, owner, clock
    ):
        token = await services.tokens.issue(document.id, version.id, owner, ttl_seconds=1)
        clock.advance(seconds=5)

        with pytest.raises(TokenExpired):
            await services.tokens.validate(token.token)

        record = await services.tokens.tokens.get_by_token(token.token)
        assert record.status == TokenStatus.EXPIRED

        # Winding the clock back does not resurrect it
        clock.advance(seconds=-10)
        with pytest.raises(TokenExpired):
            await services.tokens.validate(token.token)

    async def test_deduplicated_version_resolves_to_stored_bytes(
        self, services, owner, add_version
    ):
        first_doc = await services.catalog.create(owner.user_id)
        second_doc = await services.catalog.create(owner.user_id)
        original = await add_version(first_doc.id, owner.user_id, b"twice")
        duplicate = await add_version(second_doc.id, owner.user_id, b"twice")

        token = await services.tokens.issue(second_doc.id, duplicate.version.id, owner)
        resolved = await services.tokens.validate(token.token)

        assert resolved.storage_path == original.version.storage_path

    async def test_deleted_document(self, services, document, version, owner):
        token = await services.tokens.issue(document.id, version.id, owner)
        await services.catalog.delete(document.id, owner)

        with pytest.raises(DocumentNotFound):
            await services.tokens.validate(token.token)


class TestCleanup:
    async def test_cleanup_removes_expired_in_any_state(
        self, services, document, version, owner, clock
    ):
        used = await services.tokens.issue(document.id, version.id, owner, ttl_seconds=10)
        await services.tokens.issue(document.id, version.id, owner, ttl_seconds=10)
        fresh = await services.tokens.issue(document.id, version.id, owner, ttl_seconds=3600)
        await services.tokens.validate(used.token)

        removed = await services.tokens.cleanup_expired(clock.now + timedelta(minutes=1))

        assert removed == 2
        assert await services.tokens.tokens.get_by_token(fresh.token) is not None
        assert await services.tokens.tokens.get_by_token(used.token) is None

    async def test_cleanup_is_idempotent(self, services, document, version, owner, clock):
        await services.tokens.issue(document.id, version.id, owner, ttl_seconds=10)
        later = clock.now + timedelta(minutes=1)

        assert await services.tokens.cleanup_expired(later) == 1
        assert await services.tokens.cleanup_expired(later) == 0
