"""Object storage service for evidence files.

Uses MinIO (S3-compatible) for evidence storage. Records keep object keys, never
filesystem paths, so a stored reference cannot be used for path traversal.
"""

import logging
import re
import uuid
from datetime import timedelta
from io import BytesIO
from typing import BinaryIO, Optional, Union

from minio import Minio
from minio.error import S3Error

from casevault_api.settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class StorageService:
    """Object storage service for evidence files."""

    def __init__(self):
        """Initialize storage service with MinIO client."""
        self.bucket = settings.minio_bucket
        try:
            self.client = Minio(
                settings.minio_endpoint,
                access_key=settings.minio_access_key,
                secret_key=settings.minio_secret_key,
                secure=settings.minio_use_ssl,
            )
            # Ensure bucket exists
            if not self.client.bucket_exists(self.bucket):
                self.client.make_bucket(self.bucket)
                logger.info(f"Created bucket: {self.bucket}")
        except Exception as e:
            logger.error(f"Failed to initialize MinIO client: {e}")
            self.client = None

    @property
    def available(self) -> bool:
        return self.client is not None

    def put_object(
        self,
        object_key: str,
        data: Union[bytes, BinaryIO],
        content_type: str = "application/octet-stream",
        length: Optional[int] = None,
    ) -> str:
        """
        Upload object to storage.

        Args:
            object_key: Object key (see ``build_object_key``)
            data: Object data as bytes, or a binary stream positioned at its start
            content_type: MIME type
            length: Stream length in bytes (required for streams)

        Returns:
            Object key (for consistency)

        Raises:
            ValueError: If storage client is not available
        """
        if not self.client:
            raise ValueError("Storage client not available")

        if isinstance(data, (bytes, bytearray)):
            length = len(data)
            data = BytesIO(data)
        elif length is None:
            raise ValueError("length is required when uploading a stream")

        try:
            self.client.put_object(
                self.bucket,
                object_key,
                data,
                length=length,
                content_type=content_type,
            )
            logger.debug(f"Uploaded object: {object_key} ({length} bytes)")
            return object_key
        except S3Error as e:
            logger.error(f"Failed to upload object {object_key}: {e}")
            raise

    def delete_object(self, object_key: str):
        """Remove an object. Missing objects are ignored."""
        if not self.client:
            raise ValueError("Storage client not available")

        try:
            self.client.remove_object(self.bucket, object_key)
        except S3Error as e:
            if e.code != "NoSuchKey":
                logger.error(f"Failed to delete object {object_key}: {e}")
                raise

    def generate_signed_url(
        self, object_key: str, expires_in_seconds: int = 3600
    ) -> Optional[str]:
        """Generate presigned URL for object access, or None if client unavailable."""
        if not self.client:
            return None

        try:
            return self.client.presigned_get_object(
                self.bucket,
                object_key,
                expires=timedelta(seconds=expires_in_seconds),
            )
        except Exception as e:
            logger.error(f"Failed to generate signed URL for {object_key}: {e}")
            return None

    def bucket_ready(self) -> bool:
        """Check that the evidence bucket is reachable."""
        if not self.client:
            return False
        try:
            return self.client.bucket_exists(self.bucket)
        except S3Error:
            return False

    @staticmethod
    def build_object_key(case_id: int, file_name: str) -> str:
        """
        Build object key for an evidence file.

        Format: cases/{case_id}/evidence/{uuid}/{safe_file_name}
        """
        safe_name = _UNSAFE_NAME_CHARS.sub("_", file_name or "").strip("._") or "evidence.bin"
        return f"cases/{int(case_id)}/evidence/{uuid.uuid4().hex}/{safe_name[:200]}"


# Global instance
_storage_service: Optional[StorageService] = None


def get_storage_service() -> StorageService:
    """Get or create storage service instance."""
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
