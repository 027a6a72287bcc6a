"""Blob store implementations for DocVault."""

from docvault.infrastructure.storage.factory import StorageFactory
from docvault.infrastructure.storage.local_storage import LocalStorageService
from docvault.infrastructure.storage.timeout import TimeoutBlobStore

__all__ = ["LocalStorageService", "StorageFactory", "TimeoutBlobStore"]
