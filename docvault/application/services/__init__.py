from docvault.application.services.document_catalog import DocumentCatalog
from docvault.application.services.download_tokens import DownloadTokenManager
from docvault.application.services.hash_service import HashService
from docvault.application.services.permission_engine import PermissionEngine
from docvault.application.services.upload_coordinator import UploadCoordinator
from docvault.application.services.version_ledger import VersionLedger

__all__ = [
    "DocumentCatalog",
    "DownloadTokenManager",
    "HashService",
    "PermissionEngine",
    "UploadCoordinator",
    "VersionLedger",
]
