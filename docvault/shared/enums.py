"""Shared enumerations for DocVault."""

from enum import Enum


class AuditAction(str, Enum):
    """Audit action types recorded in the document audit trail"""

    CREATED = "created"
    DELETED = "deleted"
    PUBLISHED = "published"
    UNPUBLISHED = "unpublished"
    VERSION_COMMITTED = "version_committed"
    PERMISSION_GRANTED = "permission_granted"
    PERMISSION_REVOKED = "permission_revoked"
    DOWNLOAD_LINK_GENERATED = "download_link_generated"
    DOWNLOADED = "downloaded"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [action.value for action in cls]
