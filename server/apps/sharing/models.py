"""Database models for sharing app."""

import uuid
from typing import Final, final, override

from django.conf import settings
from django.db import models
from django.utils import timezone

# Constants for field max lengths
_TOKEN_MAX_LENGTH: Final = 128
_PASSWORD_HASH_MAX_LENGTH: Final = 255


class ResourceKind(models.TextChoices):
    """Kind of resource a share points at."""

    FILE = 'file', 'File'
    FOLDER = 'folder', 'Folder'


class ShareKind(models.TextChoices):
    """How a share is reached."""

    LINK = 'LINK', 'Link'
    USER = 'USER', 'User'


class SharePermission(models.TextChoices):
    """What the grantee may do with the resource."""

    READ = 'READ', 'Read only'
    WRITE = 'WRITE', 'Read and write'


@final
class Share(models.Model):
    """Access grant from a resource owner.

    LINK shares are reached with an unguessable ``token`` and may be
    password protected. USER shares name a ``recipient`` and carry no
    token. Revocation is terminal; expiry is derived from ``expires_at``.

    The resource is referenced by ID and kind rather than a foreign key
    because it may be either a File or a Folder; shares of deleted
    resources are removed by a signal handler.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='shares_created',
        db_index=True,
    )

    resource_id = models.UUIDField(db_index=True)

    resource_kind = models.CharField(
        max_length=16,
        choices=ResourceKind.choices,
    )

    kind = models.CharField(
        max_length=8,
        choices=ShareKind.choices,
    )

    permission = models.CharField(
        max_length=8,
        choices=SharePermission.choices,
        default=SharePermission.READ,
    )

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='shares_received',
        null=True,
        blank=True,
    )

    token = models.CharField(
        max_length=_TOKEN_MAX_LENGTH,
        unique=True,
        null=True,
        blank=True,
        help_text='URL-safe random token (LINK shares only)',
    )

    password_hash = models.CharField(
        max_length=_PASSWORD_HASH_MAX_LENGTH,
        blank=True,
        default='',
        help_text='Hashed access password, empty when unprotected',
    )

    expires_at = models.DateTimeField(null=True, blank=True)

    is_revoked = models.BooleanField(default=False)

    access_count = models.PositiveBigIntegerField(default=0)

    last_access_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Share'  # type: ignore[mutable-override]
        verbose_name_plural = 'Shares'  # type: ignore[mutable-override]
        ordering = ['-created_at']

        indexes = [
            # Optimize access checks for a resource
            models.Index(
                fields=['resource_id', 'resource_kind'],
                name='shares_resource_idx',
            ),
        ]

        constraints = [
            # LINK shares carry a token and no recipient, USER the opposite
            models.CheckConstraint(
                condition=(
                    models.Q(
                        kind=ShareKind.LINK,
                        token__isnull=False,
                        recipient__isnull=True,
                    ) |
                    models.Q(
                        kind=ShareKind.USER,
                        token__isnull=True,
                        recipient__isnull=False,
                    )
                ),
                name='shares_kind_target_consistent',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.kind}:{self.resource_kind}:{self.resource_id}'

    @property
    def has_password(self) -> bool:
        """Whether a password must be supplied to use the share."""
        return bool(self.password_hash)

    def is_expired(self) -> bool:
        """Check if the expiry time has passed.

        Returns:
            True if an expiry is set and lies in the past.
        """
        if self.expires_at is None:
            return False
        return timezone.now() > self.expires_at

    def is_accessible(self) -> bool:
        """Check if the share currently grants access.

        Returns:
            True unless revoked or expired.
        """
        return not self.is_revoked and not self.is_expired()
