"""
Infrastructure exceptions for DocVault.

This module defines infrastructure-level exceptions raised by the blob
store adapters. They share the domain base class so callers only ever see
DocVaultException subclasses.
"""

from docvault.domain.exceptions import DocVaultException


# Storage Exceptions
class StorageException(DocVaultException):
    """Base exception for blob store operations."""

    pass


class StorageNotFoundError(StorageException):
    """Blob not found in storage."""

    def __init__(self, file_path: str):
        super().__init__(
            f"File not found: {file_path}",
            "STORAGE_NOT_FOUND",
            {"file_path": file_path},
        )


class StorageUploadError(StorageException):
    """Blob write failed."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(
            f"Failed to upload file: {file_path}",
            "STORAGE_UPLOAD_ERROR",
            {"file_path": file_path, "reason": reason},
        )


class StorageDownloadError(StorageException):
    """Blob read failed."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(
            f"Failed to download file: {file_path}",
            "STORAGE_DOWNLOAD_ERROR",
            {"file_path": file_path, "reason": reason},
        )


class StorageDeleteError(StorageException):
    """Blob deletion failed."""

    def __init__(self, file_path: str, reason: str):
        super().__init__(
            f"Failed to delete file: {file_path}",
            "STORAGE_DELETE_ERROR",
            {"file_path": file_path, "reason": reason},
        )


class StorageAlreadyExistsError(StorageException):
    """A different blob already exists at the destination."""

    def __init__(self, file_path: str):
        super().__init__(
            f"File already exists: {file_path}",
            "STORAGE_EXISTS_ERROR",
            {"file_path": file_path},
        )


class StoragePermissionError(StorageException):
    """Path escapes the storage root or the operation is not allowed."""

    def __init__(self, file_path: str, operation: str):
        super().__init__(
            f"Permission denied for {operation} on {file_path}",
            "STORAGE_PERMISSION_ERROR",
            {"file_path": file_path, "operation": operation},
        )
