"""Metadata utilities for files and folders."""

import mimetypes
import uuid
from datetime import UTC, datetime
from typing import Final

from django.core.exceptions import ValidationError

_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'
_NAME_MAX_LENGTH: Final = 255
_FORBIDDEN_NAMES: Final = frozenset(('.', '..'))


def detect_mime_type(filename: str) -> str:
    """Detect MIME type from filename.

    Uses Python's built-in mimetypes module to guess MIME type
    from filename extension.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def generate_storage_key(
    user_id: int,
    file_id: uuid.UUID,
    now: datetime | None = None,
) -> str:
    """Build a fresh object key for an upload.

    Keys are grouped by owner and upload day and end in the file's UUID,
    so two uploads never share a key even with identical names.

    Args:
        user_id: Owner's user ID.
        file_id: ID of the file record about to be created.
        now: Upload time (defaults to current UTC time).

    Returns:
        Key such as '42/2026/10/18/0b9c...'.
    """
    moment = now or datetime.now(tz=UTC)
    return '{user_id}/{day}/{file_id}'.format(
        user_id=user_id,
        day=moment.strftime('%Y/%m/%d'),
        file_id=file_id,
    )


def validate_name(name: str) -> str:
    """Validate a file or folder display name.

    Args:
        name: Proposed name.

    Returns:
        Name stripped of surrounding whitespace.

    Raises:
        ValidationError: If the name is empty, too long, a dot entry
            or contains a path separator.
    """
    cleaned = name.strip()
    if not cleaned:
        raise ValidationError('Name cannot be empty')

    if len(cleaned) > _NAME_MAX_LENGTH:
        raise ValidationError(
            f'Name cannot exceed {_NAME_MAX_LENGTH} characters',
        )

    if cleaned in _FORBIDDEN_NAMES:
        raise ValidationError(f'Name cannot be {cleaned!r}')

    if '/' in cleaned or '\\' in cleaned:
        raise ValidationError('Name cannot contain path separators')

    return cleaned
