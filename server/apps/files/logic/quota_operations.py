"""Business logic for storage quota operations.

The quota ledger. ``used_bytes`` changes only through ``reserve_quota`` and
``release_quota``. Reservation is a single conditional UPDATE, so the
check and the increment happen atomically inside the database and stay
correct across processes, not just threads.
"""

import logging
from typing import Any

from django.db import transaction
from django.db.models import F, Q, Sum  # noqa: WPS347

from server.apps.files.exceptions import QuotaExceededError
from server.apps.files.models import File, UserQuota

# User type for Django's dynamic user model
_User = Any

# Field name constant to avoid string literal over-use
_USED_BYTES_FIELD = 'used_bytes'  # noqa: WPS226

logger = logging.getLogger(__name__)


def _check_size(size_bytes: int) -> None:
    if size_bytes < 0:
        raise ValueError(f'Size cannot be negative: {size_bytes}')


def get_or_create_quota(user: _User) -> UserQuota:
    """Get or create quota for user (on-demand creation).

    Args:
        user: User to get quota for.

    Returns:
        UserQuota instance for the user.
    """
    quota, created = UserQuota.objects.get_or_create(user=user)
    if created:
        logger.info(
            'Created quota for user %s: %s bytes',
            user.username,
            quota.quota_bytes,
        )
    return quota


def check_quota(user: _User, size_bytes: int) -> bool:
    """Check if user has enough quota for an upload.

    Read-only: a True answer is advisory, only ``reserve_quota`` commits.
    Creates quota on-demand if it doesn't exist.

    Args:
        user: User to check quota for.
        size_bytes: Size of the upload in bytes.

    Returns:
        True if ``used + size_bytes`` fits into the quota.
    """
    return get_or_create_quota(user).has_space_for(size_bytes)


def reserve_quota(user: _User, size_bytes: int) -> None:
    """Atomically check quota and increment usage.

    The check and the increment are one UPDATE statement filtered on the
    remaining space, so concurrent reservations for the same user can
    never overshoot the quota.

    Args:
        user: User to reserve space for.
        size_bytes: Bytes to reserve.

    Raises:
        ValueError: If size_bytes is negative.
        QuotaExceededError: If the reservation does not fit. Usage is left
            unchanged.
    """
    _check_size(size_bytes)
    get_or_create_quota(user)

    fits = Q(quota_bytes__isnull=True) | (
        Q(quota_bytes__gt=0) &
        Q(used_bytes__lte=F('quota_bytes') - size_bytes)
    )
    updated = UserQuota.objects.filter(fits, user=user).update(
        used_bytes=F(_USED_BYTES_FIELD) + size_bytes,
    )

    if updated == 0:
        quota = UserQuota.objects.get(user=user)
        logger.warning(
            'Quota exceeded for user %s: need %d, have %d available',
            user.username,
            size_bytes,
            quota.available_bytes() or 0,
        )
        raise QuotaExceededError(
            quota_bytes=quota.quota_bytes or 0,
            used_bytes=quota.used_bytes,
            required_bytes=size_bytes,
        )

    logger.debug(
        'Reserved %d bytes for user %s',
        size_bytes,
        user.username,
    )


def release_quota(user: _User, size_bytes: int) -> None:
    """Atomically decrement user's storage usage.

    Used after deletes and to compensate failed uploads. Prevents
    negative values by clamping to 0.

    Args:
        user: User to decrement usage for.
        size_bytes: Bytes to subtract from usage.

    Raises:
        ValueError: If size_bytes is negative.
    """
    _check_size(size_bytes)
    with transaction.atomic():
        # Get current quota to check if decrement would go negative
        try:
            quota = UserQuota.objects.select_for_update().get(user=user)
        except UserQuota.DoesNotExist:
            # No quota exists, nothing to decrement
            logger.debug(
                'No quota exists for user %s, skipping release',
                user.username,
            )
            return

        # Calculate new usage, clamping to 0
        new_usage = max(0, quota.used_bytes - size_bytes)
        quota.used_bytes = new_usage
        quota.save(update_fields=[_USED_BYTES_FIELD])

    logger.debug(
        'Released %d bytes for user %s (new: %d)',
        size_bytes,
        user.username,
        new_usage,
    )


def get_storage_stats(user: _User) -> tuple[int | None, int]:
    """Get user's quota limit and current usage.

    Args:
        user: User to report on.

    Returns:
        Tuple of (quota bytes or None when unlimited, used bytes).
    """
    quota = get_or_create_quota(user)
    return quota.quota_bytes, quota.used_bytes


def calculate_usage(user: _User) -> int:
    """Sum the sizes of all files the user currently owns.

    Args:
        user: Owner of the files.

    Returns:
        Total size in bytes.
    """
    return File.objects.filter(user=user).aggregate(
        total=Sum('size_bytes'),
    )['total'] or 0


def recalculate_usage(user: _User) -> int:
    """Recalculate user's storage usage from actual files.

    This is useful for fixing inconsistencies left by interrupted
    operations.

    Args:
        user: User to recalculate usage for.

    Returns:
        New calculated usage in bytes.
    """
    with transaction.atomic():
        quota = get_or_create_quota(user)
        quota = UserQuota.objects.select_for_update().get(pk=quota.pk)
        total = calculate_usage(user)
        old_usage = quota.used_bytes
        quota.used_bytes = total
        quota.save(update_fields=[_USED_BYTES_FIELD])

    logger.info(
        'Recalculated usage for user %s: %d -> %d bytes',
        user.username,
        old_usage,
        total,
    )

    return total
