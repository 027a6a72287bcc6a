"""
Domain exceptions for DocVault.

This module defines the typed failures every public operation can raise.
Exceptions are grouped by category (not found, conflict, forbidden,
validation, token state, transient, integrity) so the presentation layer
can map a whole category to one transport response.
"""

from datetime import datetime
from typing import Any


class DocVaultException(Exception):
    """
    Base exception for all DocVault errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for API responses
        details: Additional error context
        retryable: Whether the caller may retry the same request with backoff
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


# Not found
class ResourceNotFoundException(DocVaultException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str, error_code: str = "RESOURCE_NOT_FOUND"):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            error_code,
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class DocumentNotFound(ResourceNotFoundException):
    """Document is absent or has been deleted."""

    def __init__(self, document_id: str):
        super().__init__("Document", document_id, "DOCUMENT_NOT_FOUND")


class VersionNotFound(ResourceNotFoundException):
    """Version or upload reservation is absent."""

    def __init__(self, version_id: str, reason: str | None = None):
        super().__init__("DocumentVersion", version_id, "VERSION_NOT_FOUND")
        if reason:
            self.details["reason"] = reason


class TokenNotFound(ResourceNotFoundException):
    """Download token is unknown."""

    def __init__(self, token_hint: str):
        super().__init__("DownloadToken", token_hint, "TOKEN_NOT_FOUND")


# Conflict
class ConflictException(DocVaultException):
    """Raised when a request conflicts with current state."""

    pass


class VersionConflict(ConflictException):
    """The reserved version number was committed by a concurrent confirm."""

    def __init__(self, document_id: str, version_number: int):
        super().__init__(
            f"Version {version_number} of document {document_id} was already committed",
            "VERSION_CONFLICT",
            {"document_id": document_id, "version_number": version_number},
        )


class GrantConflict(ConflictException):
    """A grant disappeared between its upsert and the read-back."""

    retryable = True

    def __init__(self, document_id: str, grantee_id: str):
        super().__init__(
            f"Grant for {grantee_id} on document {document_id} was removed concurrently",
            "GRANT_CONFLICT",
            {"document_id": document_id, "grantee_id": grantee_id},
        )


class InvalidStatusTransition(ConflictException):
    """Document status cannot move from its current status to the target."""

    def __init__(self, document_id: str, current: str, target: str, error_code: str | None = None):
        super().__init__(
            f"Document {document_id} cannot move from {current} to {target}",
            error_code or "INVALID_STATUS_TRANSITION",
            {"document_id": document_id, "current": current, "target": target},
        )


class AlreadyPublished(InvalidStatusTransition):
    """Document is already published."""

    def __init__(self, document_id: str):
        super().__init__(document_id, "published", "published", "ALREADY_PUBLISHED")


class NotPublished(InvalidStatusTransition):
    """Document is not published, so it cannot be unpublished."""

    def __init__(self, document_id: str):
        super().__init__(document_id, "draft", "draft", "NOT_PUBLISHED")


class NoVersionsYet(ConflictException):
    """Document has no committed version."""

    def __init__(self, document_id: str):
        super().__init__(
            f"Document {document_id} has no committed versions",
            "NO_VERSIONS_YET",
            {"document_id": document_id},
        )


# Forbidden
class Forbidden(DocVaultException):
    """Raised when the caller lacks the required capability."""

    def __init__(self, user_id: str, resource: str, capability: str):
        super().__init__(
            f"Permission denied: {capability} on {resource}",
            "FORBIDDEN",
            {"user_id": user_id, "resource": resource, "capability": capability},
        )


# Validation
class ValidationException(DocVaultException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str | None = None, error_code: str = "VALIDATION_ERROR"):
        details = {"field": field} if field else {}
        super().__init__(message, error_code, details)


class SizeMismatch(ValidationException):
    """Confirmed size differs from the size declared at initiation."""

    def __init__(self, version_id: str, declared: int, actual: int):
        super().__init__(
            f"Size mismatch for upload {version_id}: declared {declared}, got {actual}",
            "size",
            "SIZE_MISMATCH",
        )
        self.details.update({"version_id": version_id, "declared": declared, "actual": actual})


class MalformedChecksum(ValidationException):
    """Checksum is not a SHA-256 hex digest."""

    def __init__(self, checksum: str):
        super().__init__(
            "Checksum must be a SHA-256 hex digest (64 characters)",
            "checksum",
            "MALFORMED_CHECKSUM",
        )
        self.details["checksum"] = checksum[:80]


# Token state
class TokenExpired(DocVaultException):
    """Download token is past its expiry."""

    def __init__(self, token_hint: str, expires_at: datetime):
        super().__init__(
            "Download token has expired",
            "TOKEN_EXPIRED",
            {"token": token_hint, "expires_at": expires_at.isoformat()},
        )


class TokenAlreadyUsed(DocVaultException):
    """Download token was already consumed."""

    def __init__(self, token_hint: str, used_at: datetime | None = None):
        details: dict[str, Any] = {"token": token_hint}
        if used_at:
            details["used_at"] = used_at.isoformat()
        super().__init__("Download token has already been used", "TOKEN_ALREADY_USED", details)


# Transient
class StorageUnavailable(DocVaultException):
    """Backing datastore or blob store timed out or is unreachable."""

    retryable = True

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Storage unavailable during {operation}",
            "STORAGE_UNAVAILABLE",
            {"operation": operation, "reason": reason},
        )


# Integrity
class ChecksumMismatch(DocVaultException):
    """Declared checksum differs from the checksum of the stored bytes."""

    def __init__(self, path: str, expected: str, actual: str):
        super().__init__(
            f"Checksum mismatch for {path}",
            "CHECKSUM_MISMATCH",
            {"path": path, "expected": expected, "actual": actual},
        )
