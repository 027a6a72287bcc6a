"""
Local filesystem blob store.

Security Features:
- Path traversal protection (resolve + prefix validation)
- Atomic writes (temp file + atomic rename)
- SHA-256 checksum computed on write
- File permissions (0o640 files, 0o750 dirs)
- Idempotent writes and deletes
"""

import hashlib
import os
import tempfile
from pathlib import Path

import aiofiles
import aiofiles.os

from docvault.application.dtos import StoredBlob
from docvault.infrastructure.exceptions import (StorageAlreadyExistsError,
                                                StorageDeleteError,
                                                StorageDownloadError,
                                                StorageNotFoundError,
                                                StoragePermissionError,
                                                StorageUploadError)


class LocalStorageService:
    """
    Local filesystem storage with atomic writes and path traversal protection.

    Directory Structure:
    {storage_root}/documents/{document_id}/v{version}/{version_id}/{filename}

    Security:
    - All paths validated against storage root (no ../.. attacks)
    - Atomic writes via temp file + rename
    - File permissions: 0o640 (owner rw, group r)
    - Directory permissions: 0o750 (owner rwx, group rx)
    """

    CHUNK_SIZE = 64 * 1024  # 64KB chunks for streaming

    def __init__(self, storage_root: str) -> None:
        """
        Initialize local storage service.

        Args:
            storage_root: Base directory for all blob storage
        """
        self.storage_root = Path(storage_root).resolve()

        # Create storage root if it doesn't exist
        self.storage_root.mkdir(parents=True, exist_ok=True, mode=0o750)

    def _get_full_path(self, storage_ref: str) -> Path:
        """
        Get full filesystem path with security validation.

        Raises:
            StoragePermissionError: If path traversal detected
        """
        full_path = (self.storage_root / storage_ref).resolve()

        # Security check: ensure path is within storage root
        try:
            full_path.relative_to(self.storage_root)
        except ValueError as e:
            raise StoragePermissionError(storage_ref, "path_validation") from e

        if full_path == self.storage_root:
            raise StoragePermissionError(storage_ref, "path_validation")

        return full_path

    async def _compute_checksum(self, file_path: Path) -> str:
        """SHA-256 hex digest of a file, read in chunks"""
        sha256 = hashlib.sha256()

        async with aiofiles.open(file_path, "rb") as f:
            while True:
                chunk = await f.read(self.CHUNK_SIZE)
                if not chunk:
                    break
                sha256.update(chunk)

        return sha256.hexdigest()

    async def put(self, data: bytes, destination: str) -> StoredBlob:
        """
        Write bytes with an atomic rename.

        Writing identical content to an existing path is a no-op; different
        content at an existing path is refused.

        Raises:
            StorageAlreadyExistsError: If different content exists at destination
            StoragePermissionError: If destination escapes the storage root
            StorageUploadError: If the write fails
        """
        target_path = self._get_full_path(destination)
        checksum = hashlib.sha256(data).hexdigest()

        try:
            if target_path.exists():
                existing_checksum = await self._compute_checksum(target_path)
                if existing_checksum == checksum:
                    # Idempotent: same content already stored
                    return StoredBlob(
                        path=destination, size=target_path.stat().st_size, checksum=checksum
                    )
                raise StorageAlreadyExistsError(destination)

            target_path.parent.mkdir(parents=True, exist_ok=True, mode=0o750)

            # Write to temp file first (atomic write pattern)
            temp_fd, temp_path = tempfile.mkstemp(
                dir=target_path.parent, prefix=".tmp_", suffix=target_path.suffix
            )
            os.close(temp_fd)

            try:
                async with aiofiles.open(temp_path, "wb") as f:
                    await f.write(data)

                os.chmod(temp_path, 0o640)
                os.replace(temp_path, target_path)
            finally:
                # Clean up temp file if the rename did not happen
                if Path(temp_path).exists():
                    os.unlink(temp_path)

            return StoredBlob(path=destination, size=len(data), checksum=checksum)

        except StorageAlreadyExistsError:
            raise
        except Exception as e:
            raise StorageUploadError(destination, f"Upload failed: {str(e)}") from e

    async def get(self, path: str) -> bytes:
        """
        Read a blob fully into memory.

        Raises:
            StorageNotFoundError: If the blob doesn't exist
            StorageDownloadError: If the read fails
        """
        file_path = self._get_full_path(path)
        if not file_path.exists():
            raise StorageNotFoundError(path)

        try:
            async with aiofiles.open(file_path, "rb") as f:
                return await f.read()
        except Exception as e:
            raise StorageDownloadError(path, f"Download failed: {str(e)}") from e

    async def delete(self, path: str) -> None:
        """Delete a blob and prune empty parent directories"""
        file_path = self._get_full_path(path)
        if not file_path.exists():
            return

        try:
            await aiofiles.os.remove(file_path)
        except FileNotFoundError:
            return
        except Exception as e:
            raise StorageDeleteError(path, f"Delete failed: {str(e)}") from e

        # Clean up empty parent directories
        parent = file_path.parent
        while parent != self.storage_root:
            try:
                if any(parent.iterdir()):
                    break
                parent.rmdir()
                parent = parent.parent
            except OSError:
                break

    async def exists(self, path: str) -> bool:
        return self._get_full_path(path).is_file()
