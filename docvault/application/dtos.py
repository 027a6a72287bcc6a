"""
Result types passed between the application services.

Frozen dataclasses: components hand these across boundaries instead of ORM
rows when the caller only needs a few resolved fields.
"""

from dataclasses import dataclass

from docvault.infrastructure.persistence.models.document_version import DocumentVersion


@dataclass(frozen=True)
class StoredBlob:
    """What the blob store reports after a write"""

    path: str
    size: int
    checksum: str


@dataclass(frozen=True)
class PendingVersion:
    """A reserved, not yet committed, version slot"""

    version_id: str
    document_id: str
    expected_version_number: int
    staging_target: str


@dataclass(frozen=True)
class CommitResult:
    version: DocumentVersion
    deduplicated: bool


@dataclass(frozen=True)
class ResolvedDownload:
    """What a consumed download token authorizes"""

    document_id: str
    version_id: str
    storage_path: str


@dataclass(frozen=True)
class InitiatedUpload:
    version_id: str
    document_id: str
    version_number: int
    staging_target: str


@dataclass(frozen=True)
class ConfirmedUpload:
    document_id: str
    version_id: str
    version_number: int
    deduplicated: bool
