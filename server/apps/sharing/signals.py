"""Signal handlers for sharing app."""

import logging

from django.db.models.signals import post_delete
from django.dispatch import receiver

from server.apps.files.models import File, Folder
from server.apps.sharing.models import ResourceKind, Share

logger = logging.getLogger(__name__)


def _delete_shares(resource: File | Folder, resource_kind: str) -> None:
    deleted, _ = Share.objects.filter(
        resource_id=resource.pk,
        resource_kind=resource_kind,
    ).delete()
    if deleted:
        logger.info(
            'Deleted %d shares of removed %s %s',
            deleted,
            resource_kind,
            resource.pk,
        )


@receiver(post_delete, sender=File)
def delete_file_shares(
    sender: type[File],
    instance: File,
    **kwargs: object,
) -> None:
    """Delete shares pointing at a File record that was deleted.

    Shares reference resources by ID, so no database cascade exists;
    this handler keeps tokens of deleted files from lingering.

    Args:
        sender: The File model class.
        instance: The File instance being deleted.
        **kwargs: Additional signal arguments.
    """
    _delete_shares(instance, ResourceKind.FILE)


@receiver(post_delete, sender=Folder)
def delete_folder_shares(
    sender: type[Folder],
    instance: Folder,
    **kwargs: object,
) -> None:
    """Delete shares pointing at a Folder record that was deleted.

    Args:
        sender: The Folder model class.
        instance: The Folder instance being deleted.
        **kwargs: Additional signal arguments.
    """
    _delete_shares(instance, ResourceKind.FOLDER)
