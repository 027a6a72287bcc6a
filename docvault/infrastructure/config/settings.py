from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "DocVault"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = ""  # Loaded from environment, validated in model_validator
    database_echo: bool = False
    database_timeout_seconds: float = 10.0

    # Storage
    storage_backend: str = "local"  # Options: "local", "s3"
    storage_root: str = "/var/docvault/storage"  # For local backend
    storage_base_url: str | None = None  # Base URL for download links (e.g., "https://api.example.com")
    s3_bucket: str | None = None  # Required for S3 backend
    s3_region: str = "us-east-1"
    s3_endpoint_url: str | None = None  # For MinIO/LocalStack
    s3_access_key: str | None = None  # Optional, uses IAM role if not provided
    s3_secret_key: str | None = None  # Optional, uses IAM role if not provided
    storage_timeout_seconds: float = 30.0
    max_upload_size: int = 100 * 1024 * 1024  # 100MB default
    allowed_mime_types: str = "*/*"  # Or comma-separated list
    verify_staged_checksum: bool = True  # Re-hash staged bytes on confirm

    # Uploads
    reservation_ttl_seconds: int = 3600  # Abandoned initiates are swept after 1 hour

    # Download tokens
    download_token_default_ttl_seconds: int = 300  # 5 minutes
    download_token_max_ttl_seconds: int = 24 * 60 * 60  # Requests above are clamped
    download_path_prefix: str = "/api/downloads"
    token_sweep_interval_seconds: int = 300

    # Redis Cache
    redis_enabled: bool = False  # Permission check caching
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: str | None = None

    # Cache TTL (Time-To-Live) in seconds
    cache_ttl_permissions: int = 300  # 5 minutes

    # OpenTelemetry Distributed Tracing
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"  # Options: "console", "otlp", "none"
    telemetry_otlp_endpoint: str | None = None  # e.g., "http://localhost:4317"
    telemetry_sample_rate: float = 1.0  # Sampling rate (0.0-1.0, 1.0 = 100%)
    telemetry_environment: str = "development"  # deployment environment tag

    @model_validator(mode="after")
    def validate_storage_config(self) -> "Settings":
        """Validate storage backend and required configuration"""
        if not self.database_url:
            raise ValueError("DATABASE_URL is required. Set in environment or .env file.")

        if self.storage_backend == "s3":
            if not self.s3_bucket:
                raise ValueError(
                    "s3_bucket is required when storage_backend is 's3'. "
                    "Set S3_BUCKET environment variable or update .env file."
                )
        elif self.storage_backend != "local":
            raise ValueError(
                f"Invalid storage_backend '{self.storage_backend}'. "
                f"Must be one of: 'local', 's3'"
            )

        if self.download_token_default_ttl_seconds <= 0 or self.download_token_max_ttl_seconds <= 0:
            raise ValueError("Download token TTLs must be positive")
        if self.download_token_default_ttl_seconds > self.download_token_max_ttl_seconds:
            raise ValueError(
                "DOWNLOAD_TOKEN_DEFAULT_TTL_SECONDS cannot exceed DOWNLOAD_TOKEN_MAX_TTL_SECONDS"
            )
        return self

    def allowed_mime_type_list(self) -> list[str]:
        return [m.strip().lower() for m in self.allowed_mime_types.split(",") if m.strip()]

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="allow", case_sensitive=False
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
