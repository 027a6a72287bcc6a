from docvault.schemas.document import AuditEntryResponse, DocumentResponse
from docvault.schemas.download import (CleanupResponse, ConsumedTokenResponse,
                                       DownloadLinkResponse)
from docvault.schemas.permission import PermissionResponse, RevokeResponse
from docvault.schemas.version import (ConfirmUploadResponse,
                                      InitiateUploadResponse, VersionResponse)

__all__ = [
    "AuditEntryResponse",
    "CleanupResponse",
    "ConfirmUploadResponse",
    "ConsumedTokenResponse",
    "DocumentResponse",
    "DownloadLinkResponse",
    "InitiateUploadResponse",
    "PermissionResponse",
    "RevokeResponse",
    "VersionResponse",
]
