"""Tests for the background token sweeper"""
import asyncio
import hashlib
from unittest.mock import AsyncMock

import pytest

from docvault.application.services.token_sweeper import TokenSweeper
from docvault.domain.exceptions import StorageUnavailable
from docvault.schemas import CleanupResponse


@pytest.fixture
def mock_operations():
    operations = AsyncMock()
    operations.cleanup_expired_tokens.return_value = CleanupResponse(deleted_count=2)
    operations.expire_stale_reservations.return_value = 1
    return operations


class TestSweepOnce:
    async def test_sweep_once_reports_counts(self, mock_operations):
        sweeper = TokenSweeper(mock_operations, interval_seconds=60)

        assert await sweeper.sweep_once() == (2, 1)
        mock_operations.cleanup_expired_tokens.assert_awaited_once()
        mock_operations.expire_stale_reservations.assert_awaited_once()

    async def test_sweep_against_database(self, operations, owner, clock):
        """
        GIVEN an expired token and an abandoned upload reservation
        WHEN a sweep runs
        THEN both are removed and a second sweep finds nothing
        """
        data = b"sweep me"
        initiated = await operations.initiate_upload(owner, "a.txt", "text/plain", len(data))
        await operations.confirm_upload(
            owner,
            initiated.version_id,
            len(data),
            hashlib.sha256(data).hexdigest(),
            initiated.staging_target,
        )
        await operations.issue_download_token(owner, initiated.document_id, ttl_seconds=10)
        await operations.initiate_upload(owner, "b.txt", "text/plain", 1)

        clock.advance(hours=2)
        sweeper = TokenSweeper(operations)

        assert await sweeper.sweep_once() == (1, 1)
        assert await sweeper.sweep_once() == (0, 0)


class TestLifecycle:
    async def test_start_and_stop(self, mock_operations):
        sweeper = TokenSweeper(mock_operations, interval_seconds=3600)

        sweeper.start()
        assert sweeper.running
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert not sweeper.running
        mock_operations.cleanup_expired_tokens.assert_awaited_once()

    async def test_start_is_idempotent(self, mock_operations):
        sweeper = TokenSweeper(mock_operations, interval_seconds=3600)

        sweeper.start()
        task = sweeper._task
        sweeper.start()

        assert sweeper._task is task
        await sweeper.stop()

    async def test_stop_without_start(self, mock_operations):
        sweeper = TokenSweeper(mock_operations)

        await sweeper.stop()

        assert not sweeper.running

    async def test_failed_sweep_keeps_running(self, mock_operations):
        calls = []

        async def flaky_cleanup():
            calls.append(1)
            if len(calls) == 1:
                raise StorageUnavailable("cleanup_expired_tokens", "timeout")
            return CleanupResponse(deleted_count=0)

        mock_operations.cleanup_expired_tokens.side_effect = flaky_cleanup
        sweeper = TokenSweeper(mock_operations, interval_seconds=0.01)

        sweeper.start()
        await asyncio.sleep(0.1)
        await sweeper.stop()

        assert len(calls) >= 2
