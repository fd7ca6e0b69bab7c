"""S3-compatible blob storage for result files."""

import io
from datetime import timedelta

import structlog
from minio import Minio
from minio.error import MinioException
from starlette.concurrency import run_in_threadpool

from mri_records.config import settings
from mri_records.core.exceptions import StorageException

logger = structlog.get_logger(__name__)


class BlobStorage:
    """Thin async wrapper over a MinIO client bound to one bucket."""

    def __init__(self, client: Minio, bucket: str):
        """Initialize with a configured client and bucket name."""
        self.client = client
        self.bucket = bucket

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """
        Store ``data`` under ``key``.

        Raises:
            StorageException: If the store rejects the upload
        """
        try:
            await run_in_threadpool(
                self.client.put_object,
                self.bucket,
                key,
                io.BytesIO(data),
                len(data),
                content_type=content_type,
            )
        except (MinioException, OSError) as e:
            logger.error("blob_put_failed", key=key, error=str(e))
            raise StorageException(f"Failed to store file: {e}") from e

    async def presigned_get_url(self, key: str, expires_in: int) -> str:
        """
        Create a time limited download URL for ``key``.

        Raises:
            StorageException: If the URL cannot be signed
        """
        try:
            return await run_in_threadpool(
                self.client.presigned_get_object,
                self.bucket,
                key,
                expires=timedelta(seconds=expires_in),
            )
        except (MinioException, OSError, ValueError) as e:
            logger.error("blob_sign_failed", key=key, error=str(e))
            raise StorageException(f"Failed to create download link: {e}") from e

    async def delete(self, key: str) -> None:
        """
        Remove ``key`` from the bucket.

        Raises:
            StorageException: If the store rejects the delete
        """
        try:
            await run_in_threadpool(self.client.remove_object, self.bucket, key)
        except (MinioException, OSError) as e:
            raise StorageException(f"Failed to delete file: {e}") from e

    def check_connection(self) -> bool:
        """Check that the bucket is reachable."""
        try:
            return self.client.bucket_exists(self.bucket)
        except Exception:
            return False


# Global storage instance
_blob_storage: BlobStorage | None = None


def get_blob_storage() -> BlobStorage:
    """
    Get or create the blob storage instance.

    Returns:
        BlobStorage bound to the configured bucket
    """
    global _blob_storage

    if _blob_storage is None:
        client = Minio(
            settings.storage_endpoint,
            access_key=settings.storage_access_key,
            secret_key=settings.storage_secret_key,
            region=settings.storage_region,
            secure=settings.storage_secure,
        )
        _blob_storage = BlobStorage(client, settings.storage_bucket)

    return _blob_storage
