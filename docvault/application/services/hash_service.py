"""
Hash service for content checksums.

Follows OCP - closed for modification, open for extension.
New hash algorithms can be added without modifying this class.
"""

import hashlib
from abc import ABC, abstractmethod


class HashAlgorithm(ABC):
    """Abstract base class for hash algorithms (OCP)"""

    @abstractmethod
    def new(self) -> "hashlib._Hash":
        """Fresh incremental hasher"""
        pass


class SHA256Algorithm(HashAlgorithm):
    """SHA-256, the checksum every stored version carries"""

    def new(self) -> "hashlib._Hash":
        return hashlib.sha256()


class HashService:
    """
    Computes content checksums.

    This is the single source of truth for checksum computation: the upload
    coordinator uses it to re-hash staged bytes before committing a version.
    """

    CHUNK_SIZE = 64 * 1024

    def __init__(self, algorithm: HashAlgorithm | None = None):
        self.algorithm = algorithm or SHA256Algorithm()

    def compute_hash(self, data: bytes) -> str:
        """Hex digest of data"""
        hasher = self.algorithm.new()
        view = memoryview(data)
        for offset in range(0, len(view), self.CHUNK_SIZE):
            hasher.update(view[offset : offset + self.CHUNK_SIZE])
        return hasher.hexdigest()
