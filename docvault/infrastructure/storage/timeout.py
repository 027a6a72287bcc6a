"""Timeout enforcement for blob store calls."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from botocore.exceptions import BotoCoreError

from docvault.application.dtos import StoredBlob
from docvault.application.interfaces.storage import IBlobStore
from docvault.domain.exceptions import StorageUnavailable

T = TypeVar("T")

logger = logging.getLogger(__name__)


class TimeoutBlobStore:
    """
    Wraps a blob store so no call blocks longer than the configured timeout.

    Timeouts and connection failures surface as StorageUnavailable (retryable);
    integrity and not-found errors from the inner store pass through.
    """

    def __init__(self, inner: IBlobStore, timeout: float = 30.0):
        self.inner = inner
        self.timeout = timeout

    async def _run(self, operation: str, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except TimeoutError as e:
            logger.warning("Blob store %s timed out after %.1fs", operation, self.timeout)
            raise StorageUnavailable(f"blob.{operation}", "timeout") from e
        except (ConnectionError, BotoCoreError) as e:
            logger.warning("Blob store %s unreachable: %s", operation, e)
            raise StorageUnavailable(f"blob.{operation}", str(e)) from e

    async def put(self, data: bytes, destination: str) -> StoredBlob:
        return await self._run("put", self.inner.put(data, destination))

    async def get(self, path: str) -> bytes:
        return await self._run("get", self.inner.get(path))

    async def delete(self, path: str) -> None:
        await self._run("delete", self.inner.delete(path))

    async def exists(self, path: str) -> bool:
        return await self._run("exists", self.inner.exists(path))
