"""
Blob store port.

The physical byte store (local disk, S3) sits behind this narrow contract.
Paths are opaque storage keys relative to the store's root.
"""

from typing import Protocol

from docvault.application.dtos import StoredBlob


class IBlobStore(Protocol):
    """Protocol for blob storage backends (DIP)"""

    async def put(self, data: bytes, destination: str) -> StoredBlob:
        """Persist bytes under destination and report size and SHA-256 hex checksum"""
        ...

    async def get(self, path: str) -> bytes:
        """Read the full content stored under path"""
        ...

    async def delete(self, path: str) -> None:
        """Remove the blob; deleting a missing blob is not an error"""
        ...

    async def exists(self, path: str) -> bool:
        ...
