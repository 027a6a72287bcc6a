"""Shared test fixtures for pytest"""
import hashlib
from dataclasses import dataclass
from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from docvault.application.services.document_catalog import DocumentCatalog
from docvault.application.services.download_tokens import DownloadTokenManager
from docvault.application.services.hash_service import HashService
from docvault.application.services.permission_engine import PermissionEngine
from docvault.application.services.upload_coordinator import UploadCoordinator
from docvault.application.services.version_ledger import VersionLedger
from docvault.application.use_cases.document_operations import DocumentOperations
from docvault.domain.enums import UserRole
from docvault.domain.lifecycle import utc_now
from docvault.domain.value_objects import CallerIdentity
from docvault.infrastructure.config.settings import Settings
from docvault.infrastructure.persistence.database import Database
from docvault.infrastructure.persistence.repositories import (AuditRepository,
                                                              DocumentRepository,
                                                              DownloadTokenRepository,
                                                              PermissionRepository,
                                                              VersionRepository)
from docvault.infrastructure.storage.local_storage import LocalStorageService
from docvault.infrastructure.storage.timeout import TimeoutBlobStore


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


class MutableClock:
    """Injectable clock for expiry boundary tests"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@dataclass
class Services:
    """Every service bound to one test session"""

    session: AsyncSession
    audit: AuditRepository
    ledger: VersionLedger
    catalog: DocumentCatalog
    permissions: PermissionEngine
    tokens: DownloadTokenManager
    uploads: UploadCoordinator


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a per-test SQLite file and storage root"""
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'docvault.db'}",
        storage_backend="local",
        storage_root=str(tmp_path / "storage"),
        storage_base_url="https://files.example.com",
        download_token_default_ttl_seconds=300,
        download_token_max_ttl_seconds=86400,
    )


@pytest.fixture
async def database(settings):
    """Create a fresh schema for each test"""
    db = Database.from_settings(settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def blob_store(settings):
    return TimeoutBlobStore(LocalStorageService(settings.storage_root), timeout=5.0)


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(utc_now())


@pytest.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest.fixture
def services(session, settings, blob_store, clock) -> Services:
    audit_repo = AuditRepository(session)
    document_repo = DocumentRepository(session, audit_repo)
    version_repo = VersionRepository(session, audit_repo)
    permission_repo = PermissionRepository(session, audit_repo)

    permissions = PermissionEngine(permission_repo, document_repo)
    catalog = DocumentCatalog(document_repo, version_repo, permissions)
    ledger = VersionLedger(version_repo, document_repo)
    tokens = DownloadTokenManager(
        DownloadTokenRepository(session),
        version_repo,
        document_repo,
        permissions,
        settings,
        clock=clock,
    )
    uploads = UploadCoordinator(ledger, catalog, permissions, blob_store, HashService(), settings)
    return Services(
        session=session,
        audit=audit_repo,
        ledger=ledger,
        catalog=catalog,
        permissions=permissions,
        tokens=tokens,
        uploads=uploads,
    )


@pytest.fixture
def operations(database, settings, blob_store, clock) -> DocumentOperations:
    return DocumentOperations(database, settings, blob_store, clock=clock)


@pytest.fixture
def owner() -> CallerIdentity:
    return CallerIdentity("owner-1")


@pytest.fixture
def reader() -> CallerIdentity:
    return CallerIdentity("reader-1")


@pytest.fixture
def writer() -> CallerIdentity:
    return CallerIdentity("writer-1")


@pytest.fixture
def stranger() -> CallerIdentity:
    return CallerIdentity("stranger-1")


@pytest.fixture
def system_admin() -> CallerIdentity:
    return CallerIdentity("sysadmin", role=UserRole.ADMIN)


@pytest.fixture
def add_version(services):
    """Reserve and commit a version in one step; returns the CommitResult"""

    async def _add(document_id: str, uploader_id: str, data: bytes = b"content", filename="a.txt"):
        pending = await services.ledger.reserve_version(
            document_id,
            uploader_id,
            filename=filename,
            mime_type="text/plain",
            declared_size=len(data),
        )
        return await services.ledger.commit_version(
            pending.version_id,
            size=len(data),
            storage_path=pending.staging_target,
            checksum=sha256_hex(data),
        )

    return _add
