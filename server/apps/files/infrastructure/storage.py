"""Object storage port and its Django storage adapters."""

import logging
from typing import IO, Any, Protocol, cast, final, override

from django.core.files.base import File as DjangoFile
from django.core.files.storage import FileSystemStorage, Storage, default_storage
from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
    """Capabilities the file logic needs from an object store.

    Every call may block on network I/O; timeouts are configured on the
    concrete backend and surface as exceptions.
    """

    def put(
        self,
        key: str,
        stream: IO[bytes],
        size: int,
        content_type: str,
    ) -> str:
        """Store ``stream`` under ``key`` and return the key actually used."""

    def get(self, key: str) -> IO[bytes]:
        """Open stored content for reading."""

    def delete(self, name: str) -> None:
        """Remove stored content."""

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        """Build a time-limited download URL."""

    def rollback_upload(self, key: str) -> None:
        """Best-effort removal of an object whose metadata write failed."""


class ObjectStorageMixin(Storage):
    """Implements ``ObjectStorage`` on top of the Django Storage API."""

    def put(
        self,
        key: str,
        stream: IO[bytes],
        size: int,
        content_type: str,
    ) -> str:
        """Upload content under the given key.

        Args:
            key: Storage key for the object.
            stream: Binary stream with the content.
            size: Declared content length in bytes.
            content_type: MIME type stored with the object.

        Returns:
            Actual storage key used (may differ from key if conflicts).
        """
        content = DjangoFile(stream, name=key)
        content.size = size
        content.content_type = content_type  # type: ignore[attr-defined]
        return self.save(key, content)

    def get(self, key: str) -> IO[bytes]:
        """Open stored content for reading.

        Args:
            key: Storage key of the object.

        Returns:
            Readable binary file object; caller closes it.
        """
        return self.open(key, 'rb')

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        """Build a download URL.

        Backends without URL signing return their plain URL.

        Args:
            key: Storage key of the object.
            ttl_seconds: Requested URL lifetime.

        Returns:
            URL for downloading the object.
        """
        return self.url(key)

    def rollback_upload(self, key: str) -> None:
        """Delete uploaded object for DB transaction rollback.

        This method is called when a database write fails after the object
        was successfully stored. It attempts to delete the object to
        maintain consistency.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, as the caller reports the original
        failure.

        Args:
            key: Storage key of object to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting object: %s', key)
            self.delete(key)
            logger.info('Successfully rolled back upload: %s', key)
        except Exception:
            # The object remains in storage but not in database;
            # the quota recalculation job does not see it either
            logger.exception(
                'Failed to rollback upload, orphaned object: %s',
                key,
            )


@final
class FileStorage(ObjectStorageMixin, S3Storage):
    """Custom S3 storage backend for user files.

    Extends django-storages S3Storage with:
    - The ObjectStorage port (put/get/signed_url)
    - Transaction rollback support for failed DB operations
    - Enhanced error logging
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save file to S3 with error handling and logging.

        Args:
            name: Storage path for the file.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Actual storage path used (may differ from name if conflicts).

        Raises:
            Exception: If S3 upload fails.
        """
        try:
            logger.info('Uploading object to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully uploaded object: %s', saved_name)
        except Exception:
            logger.exception('Failed to upload object to storage: %s', name)
            raise
        else:
            return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete object from S3 with error handling and logging.

        Args:
            name: Storage path of object to delete.

        Raises:
            Exception: If S3 delete fails.
        """
        try:
            logger.info('Deleting object from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted object: %s', name)
        except Exception:
            logger.exception('Failed to delete object from storage: %s', name)
            raise

    @override
    def signed_url(self, key: str, ttl_seconds: int) -> str:
        """Build a presigned GET URL valid for ``ttl_seconds``.

        Args:
            key: Storage key of the object.
            ttl_seconds: URL lifetime in seconds.

        Returns:
            Presigned URL.
        """
        return self.url(key, expire=ttl_seconds)


@final
class LocalFileStorage(ObjectStorageMixin, FileSystemStorage):
    """Filesystem backend for development without an S3 bucket."""


def get_object_storage() -> ObjectStorage:
    """Get the configured default storage backend.

    Returns:
        ObjectStorage adapter selected by the STORAGES setting.
    """
    return cast(ObjectStorage, default_storage)
