"""Exceptions for files app.

Every failure the storage core reports is a ``StorageServiceError``
subclass tagged with an ``ErrorKind``. Callers may branch on either the
class or ``error.kind``; the set of kinds is closed.
"""

import enum
from typing import ClassVar
from uuid import UUID


@enum.unique
class ErrorKind(enum.StrEnum):
    """Closed set of failure kinds reported by the storage core."""

    NOT_FOUND = 'not_found'
    INVALID_PARENT = 'invalid_parent'
    INVALID_FOLDER = 'invalid_folder'
    INVALID_FILE = 'invalid_file'
    ACCESS_DENIED = 'access_denied'
    QUOTA_EXCEEDED = 'quota_exceeded'
    STORAGE_UPLOAD_FAILED = 'storage_upload_failed'
    STORAGE_DOWNLOAD_FAILED = 'storage_download_failed'
    PERSISTENCE_FAILED = 'persistence_failed'
    FOLDER_MODIFIED = 'folder_modified'
    INVALID_PASSWORD = 'invalid_password'
    SHARE_EXPIRED = 'share_expired'
    SHARE_REVOKED = 'share_revoked'
    INVALID_SHARE_KIND = 'invalid_share_kind'
    INVALID_RESOURCE_TYPE = 'invalid_resource_type'


class StorageServiceError(Exception):
    """Base class for all storage core errors."""

    kind: ClassVar[ErrorKind]

    def __init__(
        self,
        message: str,
        *,
        resource_id: UUID | str | None = None,
        resource_kind: str | None = None,
    ) -> None:
        """Initialize error with structured context.

        Args:
            message: Human readable description.
            resource_id: ID of the file, folder, share or user involved.
            resource_kind: Kind of the resource ('file', 'folder', ...).
        """
        self.resource_id = resource_id
        self.resource_kind = resource_kind
        super().__init__(message)


class ResourceNotFoundError(StorageServiceError):
    """Raised when a file, folder, share or user does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource_kind: str, resource_id: UUID | str) -> None:
        """Initialize ResourceNotFoundError.

        Args:
            resource_kind: Kind of the missing resource.
            resource_id: ID that was looked up.
        """
        super().__init__(
            f'{resource_kind} not found: {resource_id}',
            resource_id=resource_id,
            resource_kind=resource_kind,
        )


class FileDoesNotExistError(ResourceNotFoundError):
    """Raised when a file record does not exist."""

    def __init__(self, file_id: UUID | str) -> None:
        super().__init__('file', file_id)


class FolderNotFoundError(ResourceNotFoundError):
    """Raised when a folder is missing or belongs to someone else."""

    def __init__(self, folder_id: UUID | str) -> None:
        super().__init__('folder', folder_id)


class InvalidParentError(StorageServiceError):
    """Raised when a folder's parent is missing, foreign or a descendant."""

    kind = ErrorKind.INVALID_PARENT


class InvalidFolderError(StorageServiceError):
    """Raised when a file's target folder is missing or foreign."""

    kind = ErrorKind.INVALID_FOLDER


class InvalidFileError(StorageServiceError):
    """Raised when file attributes are invalid (e.g. negative size)."""

    kind = ErrorKind.INVALID_FILE


class AccessDeniedError(StorageServiceError):
    """Raised when a principal may not read or modify a resource."""

    kind = ErrorKind.ACCESS_DENIED


class QuotaExceededError(StorageServiceError):
    """Raised when upload would exceed user's storage quota."""

    kind = ErrorKind.QUOTA_EXCEEDED

    def __init__(
        self,
        quota_bytes: int,
        used_bytes: int,
        required_bytes: int,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            quota_bytes: Total quota limit in bytes.
            used_bytes: Currently used bytes.
            required_bytes: Bytes needed for the operation.
        """
        self.quota_bytes = quota_bytes
        self.used_bytes = used_bytes
        self.required_bytes = required_bytes

        available = max(0, quota_bytes - used_bytes)
        super().__init__(
            f'Quota exceeded: need {required_bytes} bytes, '
            f'only {available} bytes available '
            f'(quota: {quota_bytes}, used: {used_bytes})',
            resource_kind='quota',
        )


class StorageUploadFailedError(StorageServiceError):
    """Raised when the object store rejects or times out an upload."""

    kind = ErrorKind.STORAGE_UPLOAD_FAILED


class StorageDownloadFailedError(StorageServiceError):
    """Raised when file content cannot be read from the object store."""

    kind = ErrorKind.STORAGE_DOWNLOAD_FAILED


class PersistenceFailedError(StorageServiceError):
    """Raised when metadata cannot be written after a successful upload."""

    kind = ErrorKind.PERSISTENCE_FAILED


class FolderModifiedError(StorageServiceError):
    """Raised when a folder gained children while it was being deleted.

    Retrying the delete picks up the new children.
    """

    kind = ErrorKind.FOLDER_MODIFIED
