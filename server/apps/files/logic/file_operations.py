"""Business logic for file operations."""

import logging
import uuid
from typing import IO, Any

from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet

from server.apps.files.exceptions import (
    AccessDeniedError,
    FileDoesNotExistError,
    InvalidFileError,
    InvalidFolderError,
    PersistenceFailedError,
    StorageDownloadFailedError,
    StorageUploadFailedError,
)
from server.apps.files.infrastructure.metadata import (
    detect_mime_type,
    generate_storage_key,
    validate_name,
)
from server.apps.files.infrastructure.storage import get_object_storage
from server.apps.files.logic.quota_operations import (
    release_quota,
    reserve_quota,
)
from server.apps.files.models import File, Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def _load_file(file_id: uuid.UUID | str) -> File:
    try:
        return File.objects.select_related('user').get(id=file_id)
    except File.DoesNotExist as error:
        raise FileDoesNotExistError(file_id) from error


def _load_owned_file(file_id: uuid.UUID | str, owner: _User) -> File:
    file_instance = _load_file(file_id)
    if file_instance.user_id != owner.pk:
        logger.warning(
            'User %s denied access to file %s',
            owner.username,
            file_id,
        )
        raise AccessDeniedError(
            'Only the owner may modify this file',
            resource_id=file_id,
            resource_kind='file',
        )
    return file_instance


def _load_target_folder(
    folder_id: uuid.UUID | str | None,
    owner: _User,
) -> Folder | None:
    """Resolve the folder a file goes into.

    Args:
        folder_id: Target folder ID, None for the user's root.
        owner: Owner of the file.

    Returns:
        Folder instance or None for the root.

    Raises:
        InvalidFolderError: If the folder is missing or foreign.
    """
    if folder_id is None:
        return None
    folder = Folder.objects.filter(id=folder_id, user=owner).first()
    if folder is None:
        raise InvalidFolderError(
            f'Folder {folder_id} does not exist or is not owned by user',
            resource_id=folder_id,
            resource_kind='folder',
        )
    return folder


def upload_file(  # noqa: WPS211
    name: str,
    size_bytes: int,
    content_type: str,
    content: IO[bytes],
    owner: _User,
    folder_id: uuid.UUID | str | None = None,
) -> File:
    """Upload file to storage and create database record.

    Steps run in a fixed order so every failure can be compensated:
    1. Check the target folder belongs to the owner.
    2. Reserve quota (nothing touched yet if this fails).
    3. Write the object (release quota if this fails).
    4. Create the record (delete object and release quota if this fails).

    Compensation is best-effort: its own failures are logged and the
    original error is raised.

    Args:
        name: Display name of the file.
        size_bytes: Declared content length.
        content_type: MIME type; guessed from the name when empty.
        content: Binary stream with the content.
        owner: Owner of the file.
        folder_id: Optional folder to place the file into.

    Returns:
        Created File instance.

    Raises:
        InvalidFileError: If the size is negative.
        InvalidFolderError: If the folder is missing or foreign.
        QuotaExceededError: If the upload does not fit the quota.
        StorageUploadFailedError: If the object store write fails.
        PersistenceFailedError: If the record cannot be created.
    """
    filename = validate_name(name)
    if size_bytes < 0:
        raise InvalidFileError(
            f'File size cannot be negative: {size_bytes}',
            resource_kind='file',
        )

    folder = _load_target_folder(folder_id, owner)
    mime_type = content_type or detect_mime_type(filename)

    # Step 1: Reserve quota before any expensive write
    reserve_quota(owner, size_bytes)

    file_id = uuid.uuid4()
    storage = get_object_storage()
    storage_key = generate_storage_key(owner.pk, file_id)

    # Step 2: Upload to storage
    try:
        logger.info('Uploading file to storage: %s', storage_key)
        saved_key = storage.put(storage_key, content, size_bytes, mime_type)
    except Exception as error:
        logger.exception(
            'Failed to upload file to storage: %s',
            storage_key,
        )
        _compensate_quota(owner, size_bytes)
        raise StorageUploadFailedError(
            f'Could not store content for {filename}',
            resource_id=file_id,
            resource_kind='file',
        ) from error

    # Step 3: Create database record
    try:
        with transaction.atomic():
            file_instance = File.objects.create(
                id=file_id,
                user=owner,
                folder=folder,
                name=filename,
                size_bytes=size_bytes,
                mime_type=mime_type,
                storage_key=saved_key,
            )
    except Exception as error:
        # Rollback: Delete object from storage since DB write failed
        logger.exception(
            'Database transaction failed, rolling back storage upload: %s',
            saved_key,
        )
        storage.rollback_upload(saved_key)
        _compensate_quota(owner, size_bytes)
        raise PersistenceFailedError(
            f'Could not save metadata for {filename}',
            resource_id=file_id,
            resource_kind='file',
        ) from error

    logger.info(
        'File record created in database: %s (ID: %s)',
        saved_key,
        file_instance.id,
    )
    return file_instance


def _compensate_quota(owner: _User, size_bytes: int) -> None:
    """Release a reservation after a failed upload, logging any failure."""
    try:
        release_quota(owner, size_bytes)
    except Exception:
        logger.exception(
            'Failed to release %d bytes for user %s after failed upload',
            size_bytes,
            owner.username,
        )


def delete_file(file_id: uuid.UUID | str, owner: _User) -> None:
    """Delete file from storage and database, releasing its quota.

    The object is deleted first; a storage failure is logged and does not
    block the metadata delete, since a record without an object can be
    reconciled later but an unreachable record cannot be cleaned at all.
    The record delete and the quota release share one transaction.

    Args:
        file_id: ID of file to delete.
        owner: User requesting the delete.

    Raises:
        FileDoesNotExistError: If file doesn't exist.
        AccessDeniedError: If the user does not own the file.
    """
    file_instance = _load_owned_file(file_id, owner)
    storage_key = file_instance.storage_key
    file_size = file_instance.size_bytes

    logger.info(
        'Deleting file: ID=%s, key=%s',
        file_id,
        storage_key,
    )

    try:
        get_object_storage().delete(storage_key)
    except Exception:
        # Log but don't raise - metadata delete is authoritative
        logger.exception(
            'Failed to delete object from storage (orphaned): %s',
            storage_key,
        )

    with transaction.atomic():
        file_instance.delete()
        release_quota(owner, file_size)

    logger.info(
        'File deleted: ID=%s, released %d bytes',
        file_id,
        file_size,
    )


def get_file(file_id: uuid.UUID | str, requester: _User | None) -> File:
    """Get a file the requester owns or that is public.

    Share-based access is resolved by the sharing app.

    Args:
        file_id: ID of the file.
        requester: Requesting user, None for anonymous access.

    Returns:
        File instance.

    Raises:
        FileDoesNotExistError: If file doesn't exist.
        AccessDeniedError: If the file is private and not owned.
    """
    file_instance = _load_file(file_id)
    is_owner = requester is not None and file_instance.user_id == requester.pk
    if not is_owner and not file_instance.is_public:
        raise AccessDeniedError(
            'File is private',
            resource_id=file_id,
            resource_kind='file',
        )
    return file_instance


def open_file_content(file_instance: File) -> IO[bytes]:
    """Open stored content of an already authorized file.

    Args:
        file_instance: File whose content to read.

    Returns:
        Readable binary stream; caller closes it.

    Raises:
        StorageDownloadFailedError: If the object store read fails.
    """
    try:
        return get_object_storage().get(file_instance.storage_key)
    except Exception as error:
        logger.exception(
            'Failed to open object from storage: %s',
            file_instance.storage_key,
        )
        raise StorageDownloadFailedError(
            f'Could not read content of {file_instance.name}',
            resource_id=file_instance.id,
            resource_kind='file',
        ) from error


def open_file(file_id: uuid.UUID | str, requester: _User | None) -> IO[bytes]:
    """Open file content for the owner or for anyone if public.

    Args:
        file_id: ID of the file.
        requester: Requesting user, None for anonymous access.

    Returns:
        Readable binary stream; caller closes it.
    """
    return open_file_content(get_file(file_id, requester))


def get_download_url(
    file_id: uuid.UUID | str,
    requester: _User | None,
    ttl_seconds: int | None = None,
) -> str:
    """Build a time-limited download URL.

    Args:
        file_id: ID of the file.
        requester: Requesting user, None for anonymous access.
        ttl_seconds: URL lifetime (defaults to FILE_SIGNED_URL_TTL).

    Returns:
        Signed URL.

    Raises:
        StorageDownloadFailedError: If the backend cannot sign the URL.
    """
    file_instance = get_file(file_id, requester)
    lifetime = ttl_seconds or settings.FILE_SIGNED_URL_TTL
    try:
        return get_object_storage().signed_url(
            file_instance.storage_key,
            lifetime,
        )
    except Exception as error:
        logger.exception(
            'Failed to sign URL for object: %s',
            file_instance.storage_key,
        )
        raise StorageDownloadFailedError(
            f'Could not create download URL for {file_instance.name}',
            resource_id=file_instance.id,
            resource_kind='file',
        ) from error


def rename_file(file_id: uuid.UUID | str, owner: _User, new_name: str) -> File:
    """Change the display name of a file.

    Args:
        file_id: ID of the file.
        owner: Owner of the file.
        new_name: New display name.

    Returns:
        Updated File instance.
    """
    file_instance = _load_owned_file(file_id, owner)
    file_instance.name = validate_name(new_name)
    file_instance.save(update_fields=['name', 'modified_at'])
    logger.info('File renamed: ID=%s -> %s', file_id, file_instance.name)
    return file_instance


def move_file(
    file_id: uuid.UUID | str,
    owner: _User,
    folder_id: uuid.UUID | str | None,
) -> File:
    """Move a file into another folder of the same owner.

    Only metadata changes; the stored object keeps its key.

    Args:
        file_id: ID of the file.
        owner: Owner of the file.
        folder_id: Destination folder, None for the root.

    Returns:
        Updated File instance.

    Raises:
        InvalidFolderError: If the destination is missing or foreign.
    """
    file_instance = _load_owned_file(file_id, owner)
    file_instance.folder = _load_target_folder(folder_id, owner)
    file_instance.save(update_fields=['folder', 'modified_at'])
    logger.info('File moved: ID=%s -> folder %s', file_id, folder_id)
    return file_instance


def set_file_visibility(
    file_id: uuid.UUID | str,
    owner: _User,
    *,
    is_public: bool,
) -> File:
    """Mark a file public or private.

    Args:
        file_id: ID of the file.
        owner: Owner of the file.
        is_public: New visibility.

    Returns:
        Updated File instance.
    """
    file_instance = _load_owned_file(file_id, owner)
    file_instance.is_public = is_public
    file_instance.save(update_fields=['is_public', 'modified_at'])
    return file_instance


def list_files(
    owner: _User,
    folder_id: uuid.UUID | str | None = None,
) -> QuerySet[File]:
    """List files directly inside a folder.

    The QuerySet can be sliced for pagination.

    Args:
        owner: Owner of files.
        folder_id: Folder to list, None for the user's root.

    Returns:
        QuerySet of File objects in the folder, newest first.
    """
    return File.objects.filter(user=owner, folder_id=folder_id)
