"""Exceptions for sharing app."""

from uuid import UUID

from server.apps.files.exceptions import (
    ErrorKind,
    ResourceNotFoundError,
    StorageServiceError,
)


class ShareNotFoundError(ResourceNotFoundError):
    """Raised when no share matches an ID or token."""

    def __init__(self, lookup: UUID | str) -> None:
        super().__init__('share', lookup)


class ShareRevokedError(StorageServiceError):
    """Raised when a revoked share is used."""

    kind = ErrorKind.SHARE_REVOKED


class ShareExpiredError(StorageServiceError):
    """Raised when a share is used after its expiry time."""

    kind = ErrorKind.SHARE_EXPIRED


class InvalidPasswordError(StorageServiceError):
    """Raised when a share password is missing or wrong."""

    kind = ErrorKind.INVALID_PASSWORD


class InvalidShareKindError(StorageServiceError):
    """Raised when an operation does not apply to the share's kind."""

    kind = ErrorKind.INVALID_SHARE_KIND


class InvalidResourceTypeError(StorageServiceError):
    """Raised when a share points at the wrong kind of resource."""

    kind = ErrorKind.INVALID_RESOURCE_TYPE
