"""Management command to reconcile quota usage with stored files."""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from server.apps.files.logic.quota_operations import (
    calculate_usage,
    get_or_create_quota,
    recalculate_usage,
)

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Reset ``used_bytes`` to the real total size of each user's files."""

    help = 'Recalculate storage usage from file records'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show drifted quotas without fixing them',
        )
        parser.add_argument(
            '--user',
            dest='username',
            help='Only process the user with this username',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the recalculation command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If ``--user`` names an unknown user.
        """
        dry_run = options['dry_run']
        username = options['username']

        users = get_user_model().objects.order_by('pk')
        if username:
            users = users.filter(username=username)
            if not users.exists():
                raise CommandError(f'User not found: {username}')

        drifted = 0
        for user in users.iterator():
            recorded = get_or_create_quota(user).used_bytes
            actual = calculate_usage(user)
            if recorded == actual:
                continue

            drifted += 1
            if dry_run:
                self.stdout.write(
                    f'Would fix {user.username}: {recorded} -> {actual} bytes',
                )
                continue

            recalculate_usage(user)
            self.stdout.write(
                f'Fixed {user.username}: {recorded} -> {actual} bytes',
            )

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would fix {drifted} quotas'),
            )
        else:
            logger.info('Quota recalculation fixed %d users', drifted)
            self.stdout.write(
                self.style.SUCCESS(f'Fixed {drifted} quotas'),
            )
