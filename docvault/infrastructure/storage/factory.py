"""Blob store factory for backend selection."""
from docvault.application.interfaces.storage import IBlobStore
from docvault.infrastructure.config.settings import Settings
from docvault.infrastructure.storage.local_storage import LocalStorageService
from docvault.infrastructure.storage.timeout import TimeoutBlobStore


class StorageFactory:
    """Factory for creating blob store instances based on configuration."""

    @staticmethod
    def create_storage_service(settings: Settings) -> IBlobStore:
        """
        Create the configured blob store, wrapped with the storage timeout.

        Raises:
            ValueError: If unknown backend or missing required config
        """
        backend = settings.storage_backend.lower()

        store: IBlobStore
        if backend == "local":
            if not settings.storage_root:
                raise ValueError("STORAGE_ROOT required for local backend")
            store = LocalStorageService(storage_root=settings.storage_root)

        elif backend == "s3":
            # Import here to avoid dependency if not using S3
            from docvault.infrastructure.storage.s3_storage import S3StorageService

            if not settings.s3_bucket:
                raise ValueError("S3_BUCKET required for s3 backend")

            store = S3StorageService(
                bucket=settings.s3_bucket,
                region=settings.s3_region,
                endpoint_url=settings.s3_endpoint_url,
                access_key=settings.s3_access_key,
                secret_key=settings.s3_secret_key,
            )

        else:
            raise ValueError(
                f"Unknown storage backend: {backend}. " f"Supported: 'local', 's3'"
            )

        return TimeoutBlobStore(store, timeout=settings.storage_timeout_seconds)
