"""Database models for files app."""

import uuid
from pathlib import Path
from typing import Final, final, override

from django.conf import settings
from django.db import models

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_MIME_TYPE_MAX_LENGTH: Final = 255
_STORAGE_KEY_MAX_LENGTH: Final = 1024


def default_quota_bytes() -> int:
    """Quota assigned to new users.

    Returns:
        ``DEFAULT_STORAGE_QUOTA_BYTES`` setting (5 GB by default).
    """
    return settings.DEFAULT_STORAGE_QUOTA_BYTES


@final
class Folder(models.Model):
    """Folder in a user's hierarchy.

    Folders without a parent are roots. The parent must belong to the same
    user and the parent links of one user's folders form a tree.

    Parent links use RESTRICT: a folder row cannot disappear while a child
    still points at it, so cascading deletes must remove children first.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    parent = models.ForeignKey(
        'self',
        on_delete=models.RESTRICT,
        related_name='children',
        null=True,
        blank=True,
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='folders',
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering = ['name']

        indexes = [
            # Optimize child listing queries
            models.Index(
                fields=['user', 'parent'],
                name='folders_user_parent_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}:{self.name}'

    @property
    def is_root(self) -> bool:
        """Whether the folder sits at the top of the hierarchy."""
        return self.parent_id is None


@final
class File(models.Model):
    """File stored in the object store.

    ``storage_key`` is an opaque locator generated on upload
    ({user_id}/{yyyy}/{mm}/{dd}/{uuid}); the display ``name`` and the
    containing ``folder`` are metadata only and can change without
    touching the stored object.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Owner relationship
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='files',
        db_index=True,
    )

    folder = models.ForeignKey(
        Folder,
        on_delete=models.RESTRICT,
        related_name='files',
        null=True,
        blank=True,
    )

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    size_bytes = models.BigIntegerField(
        help_text='File size in bytes',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        help_text='Content type declared on upload or guessed from the name',
    )

    storage_key = models.CharField(
        max_length=_STORAGE_KEY_MAX_LENGTH,
        unique=True,
        help_text='Object key in storage: {user_id}/yyyy/mm/dd/{uuid}',
    )

    is_public = models.BooleanField(
        default=False,
        help_text='Public files are readable by anyone',
    )

    # Timestamps
    uploaded_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering = ['-uploaded_at']

        indexes = [
            # Optimize directory listing queries
            models.Index(
                fields=['user', 'folder'],
                name='files_user_folder_idx',
            ),
            # Optimize recent files queries
            models.Index(
                fields=['user', '-uploaded_at'],
                name='files_user_recent_idx',
            ),
        ]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(size_bytes__gte=0),
                name='files_size_bytes_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}:{self.name}'

    def get_extension(self) -> str:
        """Extract file extension.

        Example: 'file.pdf' -> 'pdf'

        Returns:
            Extension without dot (lowercase).
        """
        extension = Path(self.name).suffix
        return extension.lstrip('.').lower()


@final
class UserQuota(models.Model):
    """Storage quota for a user.

    Tracks user's storage limit and current usage. ``quota_bytes`` of
    ``None`` means unlimited; ``0`` means no allowance at all.

    ``used_bytes`` is only changed through the quota operations, which
    reserve space before an upload and release it after a delete.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='quota',
        primary_key=True,
    )

    quota_bytes = models.BigIntegerField(
        default=default_quota_bytes,
        null=True,
        blank=True,
        help_text='Storage quota limit in bytes (empty = unlimited)',
    )

    used_bytes = models.BigIntegerField(
        default=0,
        help_text='Currently used storage in bytes',
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'User Quota'  # type: ignore[mutable-override]
        verbose_name_plural = 'User Quotas'  # type: ignore[mutable-override]

        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(quota_bytes__isnull=True) |
                    models.Q(quota_bytes__gte=0)
                ),
                name='quota_bytes_non_negative',
            ),
            models.CheckConstraint(
                condition=models.Q(used_bytes__gte=0),
                name='used_bytes_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        limit = 'unlimited' if self.is_unlimited else self.quota_bytes
        return f'{self.user.username}: {self.used_bytes}/{limit}'

    @property
    def is_unlimited(self) -> bool:
        """Whether the quota has no upper bound."""
        return self.quota_bytes is None

    def has_space_for(self, size_bytes: int) -> bool:
        """Check if there's enough space for the given size.

        Args:
            size_bytes: Size to check in bytes.

        Returns:
            True if there's enough space, False otherwise. A zero quota
            never has space, not even for empty files.
        """
        if self.quota_bytes is None:
            return True
        if self.quota_bytes == 0:
            return False
        return self.used_bytes + size_bytes <= self.quota_bytes

    def available_bytes(self) -> int | None:
        """Get available storage space.

        Returns:
            Available bytes (never negative), None when unlimited.
        """
        if self.quota_bytes is None:
            return None
        available = self.quota_bytes - self.used_bytes
        return max(0, available)
