"""
S3-compatible blob store (AWS S3, MinIO, DigitalOcean Spaces).

Security Features:
- Server-side encryption (AES256)
- SHA-256 checksum stored in object metadata
- Idempotent writes
"""

import hashlib

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from docvault.application.dtos import StoredBlob
from docvault.infrastructure.exceptions import (StorageAlreadyExistsError,
                                                StorageDeleteError,
                                                StorageDownloadError,
                                                StorageNotFoundError,
                                                StorageUploadError)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


class S3StorageService:
    """
    S3-compatible object storage with checksums in object metadata.

    Object keys:
    documents/{document_id}/v{version}/{version_id}/{filename}
    """

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
    ):
        """
        Initialize S3 storage service.

        Args:
            bucket: S3 bucket name
            region: AWS region (default: us-east-1)
            endpoint_url: Custom endpoint for MinIO/DigitalOcean (optional)
            access_key: AWS access key (optional, uses IAM role if not provided)
            secret_key: AWS secret key (optional, uses IAM role if not provided)
        """
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url

        self.session = aioboto3.Session(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )

    def _get_client_config(self):
        """Get boto3 client configuration"""
        config = {}
        if self.endpoint_url:
            config["endpoint_url"] = self.endpoint_url
        return config

    @staticmethod
    def _is_missing(error: ClientError) -> bool:
        return error.response.get("Error", {}).get("Code") in _MISSING_CODES

    async def put(self, data: bytes, destination: str) -> StoredBlob:
        """
        Upload bytes with server-side encryption.

        Raises:
            StorageAlreadyExistsError: If an object with a different checksum exists
            StorageUploadError: If upload fails
        """
        checksum = hashlib.sha256(data).hexdigest()
        try:
            async with self.session.client("s3", **self._get_client_config()) as s3:
                try:
                    head = await s3.head_object(Bucket=self.bucket, Key=destination)
                    existing_checksum = head.get("Metadata", {}).get("sha256")
                    if existing_checksum == checksum:
                        # Idempotent: object already exists with same checksum
                        return StoredBlob(
                            path=destination, size=head["ContentLength"], checksum=checksum
                        )
                    raise StorageAlreadyExistsError(destination)
                except ClientError as e:
                    if not self._is_missing(e):
                        raise

                await s3.put_object(
                    Bucket=self.bucket,
                    Key=destination,
                    Body=data,
                    ServerSideEncryption="AES256",
                    Metadata={"sha256": checksum, "original-size": str(len(data))},
                )

            return StoredBlob(path=destination, size=len(data), checksum=checksum)

        except (StorageAlreadyExistsError, BotoCoreError):
            raise
        except Exception as e:
            raise StorageUploadError(file_path=destination, reason=str(e)) from e

    async def get(self, path: str) -> bytes:
        """
        Download an object's full content.

        Raises:
            StorageNotFoundError: If object doesn't exist
            StorageDownloadError: If download fails
        """
        try:
            async with self.session.client("s3", **self._get_client_config()) as s3:
                response = await s3.get_object(Bucket=self.bucket, Key=path)
                async with response["Body"] as stream:
                    return await stream.read()
        except ClientError as e:
            if self._is_missing(e):
                raise StorageNotFoundError(path) from e
            raise StorageDownloadError(path, str(e)) from e
        except BotoCoreError:
            raise
        except Exception as e:
            raise StorageDownloadError(path, str(e)) from e

    async def delete(self, path: str) -> None:
        """Delete an object; S3 treats deleting a missing key as success"""
        try:
            async with self.session.client("s3", **self._get_client_config()) as s3:
                await s3.delete_object(Bucket=self.bucket, Key=path)
        except ClientError as e:
            if self._is_missing(e):
                return
            raise StorageDeleteError(path, str(e)) from e

    async def exists(self, path: str) -> bool:
        try:
            async with self.session.client("s3", **self._get_client_config()) as s3:
                await s3.head_object(Bucket=self.bucket, Key=path)
                return True
        except ClientError as e:
            if self._is_missing(e):
                return False
            raise StorageDownloadError(path, str(e)) from e
