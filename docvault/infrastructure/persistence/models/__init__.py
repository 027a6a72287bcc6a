"""ORM models. Importing this package registers every table on Base.metadata."""

from docvault.infrastructure.persistence.models.audit import DocumentAudit
from docvault.infrastructure.persistence.models.document import Document
from docvault.infrastructure.persistence.models.document_version import DocumentVersion
from docvault.infrastructure.persistence.models.download_token import DownloadToken
from docvault.infrastructure.persistence.models.permission import DocumentPermission
from docvault.infrastructure.persistence.models.upload_reservation import UploadReservation

__all__ = [
    "Document",
    "DocumentAudit",
    "DocumentPermission",
    "DocumentVersion",
    "DownloadToken",
    "UploadReservation",
]
