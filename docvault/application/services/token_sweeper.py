"""Periodic background sweep of expired download tokens and stale upload reservations."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from docvault.domain.exceptions import DocVaultException

if TYPE_CHECKING:
    from docvault.application.use_cases.document_operations import DocumentOperations

logger = logging.getLogger(__name__)


class TokenSweeper:
    """
    Runs the cleanup operations every interval_seconds in an asyncio task.

    Both sweeps are idempotent deletes, so several sweepers (one per process)
    may run side by side. A failed sweep is logged and retried on the next tick.
    """

    def __init__(self, operations: DocumentOperations, interval_seconds: float = 300.0):
        self.operations = operations
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep_once(self) -> tuple[int, int]:
        """Run both sweeps; returns (tokens_deleted, reservations_expired)"""
        cleaned = await self.operations.cleanup_expired_tokens()
        reservations = await self.operations.expire_stale_reservations()
        logger.info(
            "Sweep removed %d expired tokens and %d stale reservations",
            cleaned.deleted_count,
            reservations,
        )
        return cleaned.deleted_count, reservations

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.sweep_once()
            except DocVaultException as e:
                logger.warning("Sweep failed (%s): %s", e.error_code, e.message)
            except Exception as e:
                logger.error(f"Sweep failed unexpectedly: {e}", exc_info=True)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                continue

    def start(self) -> None:
        """Start the background task (idempotent)"""
        if self.running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._run(), name="docvault-token-sweeper")
        logger.info("Token sweeper started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        """Signal the loop to stop and wait for the current sweep to finish"""
        if self._task is None:
            return
        self._stopping.set()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
            logger.info("Token sweeper stopped")
