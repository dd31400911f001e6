"""Business logic for share operations.

A share is Active until it is revoked (terminal) or its expiry time
passes (derived, never stored). Only the owner mutates a share; the one
exception is the access counter, which every successful token
resolution bumps.
"""

import logging
import secrets
import uuid
from datetime import datetime
from typing import Any, Final

from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F, Q, QuerySet
from django.utils import timezone

from server.apps.files.exceptions import (
    AccessDeniedError,
    PersistenceFailedError,
    ResourceNotFoundError,
)
from server.apps.files.models import File, Folder
from server.apps.sharing.exceptions import (
    InvalidPasswordError,
    InvalidResourceTypeError,
    InvalidShareKindError,
    ShareExpiredError,
    ShareNotFoundError,
    ShareRevokedError,
)
from server.apps.sharing.models import (
    ResourceKind,
    Share,
    ShareKind,
    SharePermission,
)

# User type for Django's dynamic user model
_User = Any

# Regenerations allowed when a token hits the unique index
_TOKEN_ATTEMPTS: Final = 5

logger = logging.getLogger(__name__)


def parse_resource_kind(resource_kind: str) -> ResourceKind:
    """Validate a resource kind string.

    Args:
        resource_kind: 'file' or 'folder'.

    Returns:
        Matching ResourceKind.

    Raises:
        InvalidResourceTypeError: For any other value.
    """
    try:
        return ResourceKind(resource_kind)
    except ValueError as error:
        raise InvalidResourceTypeError(
            f'Unknown resource kind: {resource_kind!r}',
            resource_kind=resource_kind,
        ) from error


def get_resource(
    resource_id: uuid.UUID | str,
    resource_kind: str,
) -> File | Folder | None:
    """Load the file or folder a share may point at.

    Args:
        resource_id: ID of the resource.
        resource_kind: 'file' or 'folder'.

    Returns:
        The resource, or None if it does not exist.
    """
    if parse_resource_kind(resource_kind) == ResourceKind.FILE:
        return File.objects.filter(id=resource_id).first()
    return Folder.objects.filter(id=resource_id).first()


def _check_resource_owner(
    owner: _User,
    resource_id: uuid.UUID | str,
    resource_kind: str,
) -> None:
    resource = get_resource(resource_id, resource_kind)
    if resource is None:
        raise ResourceNotFoundError(resource_kind, resource_id)
    if resource.user_id != owner.pk:
        raise AccessDeniedError(
            'Only the owner may share this resource',
            resource_id=resource_id,
            resource_kind=resource_kind,
        )


def _parse_permission(permission: str) -> SharePermission:
    try:
        return SharePermission(permission)
    except ValueError as error:
        raise ValidationError(
            f'Unknown share permission: {permission!r}',
        ) from error


def _generate_token() -> str:
    """Generate a URL-safe token with SHARE_TOKEN_BYTES of randomness."""
    return secrets.token_urlsafe(settings.SHARE_TOKEN_BYTES)


def create_link_share(
    owner: _User,
    resource_id: uuid.UUID | str,
    resource_kind: str,
    permission: str = SharePermission.READ,
) -> Share:
    """Create a share reachable by anyone holding its token.

    The token is regenerated if it ever collides with an existing one,
    so every LINK share has a globally unique token.

    Args:
        owner: Owner of the resource.
        resource_id: ID of the file or folder.
        resource_kind: 'file' or 'folder'.
        permission: 'READ' or 'WRITE'.

    Returns:
        Created Share instance.

    Raises:
        ResourceNotFoundError: If the resource does not exist.
        AccessDeniedError: If the resource belongs to someone else.
        PersistenceFailedError: If no unique token could be stored.
    """
    kind = parse_resource_kind(resource_kind)
    share_permission = _parse_permission(permission)
    _check_resource_owner(owner, resource_id, kind)

    for attempt in range(1, _TOKEN_ATTEMPTS + 1):
        try:
            with transaction.atomic():
                share = Share.objects.create(
                    owner=owner,
                    resource_id=resource_id,
                    resource_kind=kind,
                    kind=ShareKind.LINK,
                    permission=share_permission,
                    token=_generate_token(),
                )
        except IntegrityError:
            logger.warning(
                'Share token collision for %s %s (attempt %d)',
                kind,
                resource_id,
                attempt,
            )
            continue

        logger.info(
            'Link share created: %s for %s %s',
            share.id,
            kind,
            resource_id,
        )
        return share

    raise PersistenceFailedError(
        'Could not generate a unique share token',
        resource_id=resource_id,
        resource_kind=kind,
    )


def create_user_share(
    owner: _User,
    resource_id: uuid.UUID | str,
    resource_kind: str,
    recipient: _User,
    permission: str = SharePermission.READ,
) -> Share:
    """Share a resource with one specific user.

    Args:
        owner: Owner of the resource.
        resource_id: ID of the file or folder.
        resource_kind: 'file' or 'folder'.
        recipient: User receiving access.
        permission: 'READ' or 'WRITE'.

    Returns:
        Created Share instance.
    """
    kind = parse_resource_kind(resource_kind)
    share_permission = _parse_permission(permission)
    _check_resource_owner(owner, resource_id, kind)

    share = Share.objects.create(
        owner=owner,
        resource_id=resource_id,
        resource_kind=kind,
        kind=ShareKind.USER,
        permission=share_permission,
        recipient=recipient,
    )
    logger.info(
        'User share created: %s for %s %s -> user %s',
        share.id,
        kind,
        resource_id,
        recipient.username,
    )
    return share


def get_share(share_id: uuid.UUID | str, owner: _User) -> Share:
    """Get a share for its owner.

    Args:
        share_id: ID of the share.
        owner: Expected owner.

    Returns:
        Share instance.

    Raises:
        ShareNotFoundError: If the share does not exist.
        AccessDeniedError: If it belongs to someone else.
    """
    share = Share.objects.filter(id=share_id).first()
    if share is None:
        raise ShareNotFoundError(share_id)
    if share.owner_id != owner.pk:
        raise AccessDeniedError(
            'Only the owner may manage this share',
            resource_id=share_id,
            resource_kind='share',
        )
    return share


def set_share_password(
    share_id: uuid.UUID | str,
    owner: _User,
    password: str | None,
) -> Share:
    """Protect a link share with a password, or remove protection.

    Args:
        share_id: ID of the share.
        owner: Owner of the share.
        password: New password, None or empty to remove it.

    Returns:
        Updated Share instance.

    Raises:
        InvalidShareKindError: For USER shares.
    """
    share = get_share(share_id, owner)
    if share.kind != ShareKind.LINK:
        raise InvalidShareKindError(
            'Only link shares can be password protected',
            resource_id=share_id,
            resource_kind='share',
        )

    share.password_hash = make_password(password) if password else ''
    share.save(update_fields=['password_hash', 'modified_at'])
    logger.info(
        'Share %s password %s',
        share_id,
        'set' if password else 'cleared',
    )
    return share


def set_share_expiration(
    share_id: uuid.UUID | str,
    owner: _User,
    expires_at: datetime | None,
) -> Share:
    """Set or clear the expiry time of a share.

    Args:
        share_id: ID of the share.
        owner: Owner of the share.
        expires_at: Aware datetime after which the share stops working,
            None to never expire.

    Returns:
        Updated Share instance.
    """
    share = get_share(share_id, owner)
    share.expires_at = expires_at
    share.save(update_fields=['expires_at', 'modified_at'])
    logger.info('Share %s expiration set to %s', share_id, expires_at)
    return share


def revoke_share(share_id: uuid.UUID | str, owner: _User) -> Share:
    """Revoke a share. Revoking twice is a no-op.

    Args:
        share_id: ID of the share.
        owner: Owner of the share.

    Returns:
        Revoked Share instance.
    """
    share = get_share(share_id, owner)
    if share.is_revoked:
        return share

    share.is_revoked = True
    share.save(update_fields=['is_revoked', 'modified_at'])
    logger.info('Share revoked: %s', share_id)
    return share


def delete_share(share_id: uuid.UUID | str, owner: _User) -> None:
    """Permanently delete a share.

    Args:
        share_id: ID of the share.
        owner: Owner of the share.
    """
    share = get_share(share_id, owner)
    share.delete()
    logger.info('Share deleted: %s', share_id)


def resolve_by_token(token: str, password: str | None = None) -> Share:
    """Resolve a link share token and record the access.

    Checks run in order (revoked, expired, password) and all of them
    finish before the access is recorded, so a rejected attempt never
    bumps the counter.

    Args:
        token: Share token from the link.
        password: Password supplied by the visitor, if any.

    Returns:
        Share with updated access_count and last_access_at.

    Raises:
        ShareNotFoundError: If no link share has this token.
        ShareRevokedError: If the share was revoked.
        ShareExpiredError: If the share expired.
        InvalidPasswordError: If the password is missing or wrong.
    """
    share = Share.objects.filter(token=token, kind=ShareKind.LINK).first()
    if share is None:
        raise ShareNotFoundError('token')

    if share.is_revoked:
        raise ShareRevokedError(
            'Share has been revoked',
            resource_id=share.id,
            resource_kind='share',
        )

    if share.is_expired():
        raise ShareExpiredError(
            'Share has expired',
            resource_id=share.id,
            resource_kind='share',
        )

    if share.has_password and not check_password(
        password or '',
        share.password_hash,
    ):
        logger.warning('Invalid password for share %s', share.id)
        raise InvalidPasswordError(
            'Invalid share password',
            resource_id=share.id,
            resource_kind='share',
        )

    _record_access(share)
    return share


def _record_access(share: Share) -> None:
    """Atomically bump the access counter of a still-active share.

    Args:
        share: Share that passed all checks; refreshed in place.

    Raises:
        ShareRevokedError: If the share was revoked after the checks.
    """
    now = timezone.now()
    updated = Share.objects.filter(pk=share.pk, is_revoked=False).update(
        access_count=F('access_count') + 1,
        last_access_at=now,
    )
    if updated == 0:
        raise ShareRevokedError(
            'Share has been revoked',
            resource_id=share.id,
            resource_kind='share',
        )
    share.refresh_from_db(fields=['access_count', 'last_access_at'])
    logger.debug(
        'Share %s accessed (count: %d)',
        share.id,
        share.access_count,
    )


def is_share_accessible(share: Share) -> bool:
    """Check whether a share currently grants access.

    Args:
        share: Share to inspect.

    Returns:
        True unless the share is revoked or expired.
    """
    return share.is_accessible()


def _active_filter() -> Q:
    return Q(is_revoked=False) & (
        Q(expires_at__isnull=True) | Q(expires_at__gt=timezone.now())
    )


def check_direct_access(
    user: _User | None,
    resource_id: uuid.UUID | str,
    resource_kind: str,
) -> bool:
    """Check whether an active USER share grants the user the resource.

    Link shares never count: only the token holder gets that access.

    Args:
        user: User asking for access, None for anonymous.
        resource_id: ID of the file or folder.
        resource_kind: 'file' or 'folder'.

    Returns:
        True if a non-revoked, non-expired USER share names the user.
    """
    if user is None or not user.is_authenticated:
        return False
    return Share.objects.filter(
        _active_filter(),
        kind=ShareKind.USER,
        recipient=user,
        resource_id=resource_id,
        resource_kind=parse_resource_kind(resource_kind),
    ).exists()


def list_shares_by_owner(owner: _User) -> QuerySet[Share]:
    """List every share the user created, newest first."""
    return Share.objects.filter(owner=owner)


def list_shares_for_resource(
    owner: _User,
    resource_id: uuid.UUID | str,
    resource_kind: str,
) -> QuerySet[Share]:
    """List shares of one resource for its owner.

    Args:
        owner: Owner of the resource.
        resource_id: ID of the file or folder.
        resource_kind: 'file' or 'folder'.

    Returns:
        QuerySet of shares, newest first.
    """
    kind = parse_resource_kind(resource_kind)
    _check_resource_owner(owner, resource_id, kind)
    return Share.objects.filter(resource_id=resource_id, resource_kind=kind)


def list_shares_with_user(user: _User) -> QuerySet[Share]:
    """List active USER shares naming the user as recipient."""
    return Share.objects.filter(
        _active_filter(),
        kind=ShareKind.USER,
        recipient=user,
    )


def get_share_url(share: Share, base_url: str) -> str:
    """Build the public URL of a link share.

    Args:
        share: LINK share.
        base_url: Public base URL of the frontend.

    Returns:
        URL such as 'https://example.com/share/<token>'.

    Raises:
        InvalidShareKindError: For USER shares.
    """
    if share.kind != ShareKind.LINK or not share.token:
        raise InvalidShareKindError(
            'Only link shares have a URL',
            resource_id=share.id,
            resource_kind='share',
        )
    return '{base}/share/{token}'.format(
        base=base_url.rstrip('/'),
        token=share.token,
    )
