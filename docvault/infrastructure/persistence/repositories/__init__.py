from docvault.infrastructure.persistence.repositories.audit_repo import AuditRepository
from docvault.infrastructure.persistence.repositories.document_repo import DocumentRepository
from docvault.infrastructure.persistence.repositories.download_token_repo import (
    DownloadTokenRepository,
)
from docvault.infrastructure.persistence.repositories.permission_repo import PermissionRepository
from docvault.infrastructure.persistence.repositories.version_repo import VersionRepository

__all__ = [
    "AuditRepository",
    "DocumentRepository",
    "DownloadTokenRepository",
    "PermissionRepository",
    "VersionRepository",
]
