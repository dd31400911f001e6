"""Business logic for folder hierarchy operations."""

import logging
import uuid
from typing import Any

from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet, RestrictedError

from server.apps.files.exceptions import (
    FolderModifiedError,
    FolderNotFoundError,
    InvalidParentError,
)
from server.apps.files.infrastructure.metadata import validate_name
from server.apps.files.logic.file_operations import delete_file
from server.apps.files.models import File, Folder

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def _load_parent(
    parent_id: uuid.UUID | str | None,
    owner: _User,
) -> Folder | None:
    if parent_id is None:
        return None
    parent = Folder.objects.filter(id=parent_id, user=owner).first()
    if parent is None:
        raise InvalidParentError(
            f'Parent folder {parent_id} does not exist or is not owned by user',
            resource_id=parent_id,
            resource_kind='folder',
        )
    return parent


def create_folder(
    name: str,
    owner: _User,
    parent_id: uuid.UUID | str | None = None,
) -> Folder:
    """Create a folder, optionally under a parent.

    Args:
        name: Folder name.
        owner: Owner of the folder.
        parent_id: Parent folder ID, None for a root folder.

    Returns:
        Created Folder instance.

    Raises:
        InvalidParentError: If the parent is missing or foreign, or the
            folder would be nested deeper than FOLDER_MAX_DEPTH.
    """
    folder_name = validate_name(name)
    parent = _load_parent(parent_id, owner)
    if parent is not None:
        _check_nesting(parent)
    folder = Folder.objects.create(
        name=folder_name,
        parent=parent,
        user=owner,
    )
    logger.info(
        'Folder created: %s (ID: %s, parent: %s)',
        folder_name,
        folder.id,
        parent_id,
    )
    return folder


def get_folder(folder_id: uuid.UUID | str, owner: _User) -> Folder:
    """Get a folder owned by the user.

    Args:
        folder_id: ID of the folder.
        owner: Expected owner.

    Returns:
        Folder instance.

    Raises:
        FolderNotFoundError: If missing or owned by someone else.
    """
    folder = Folder.objects.filter(id=folder_id, user=owner).first()
    if folder is None:
        raise FolderNotFoundError(folder_id)
    return folder


def list_children(
    owner: _User,
    parent_id: uuid.UUID | str | None = None,
) -> QuerySet[Folder]:
    """List direct child folders.

    Args:
        owner: Owner of the folders.
        parent_id: Parent to list, None for root folders.

    Returns:
        QuerySet of direct children ordered by name.
    """
    return Folder.objects.filter(user=owner, parent_id=parent_id)


def get_contents(
    folder_id: uuid.UUID | str,
    owner: _User,
) -> tuple[QuerySet[Folder], QuerySet[File]]:
    """Get direct subfolders and direct files of a folder.

    Args:
        folder_id: ID of the folder.
        owner: Owner of the folder.

    Returns:
        Tuple of (subfolders, files).

    Raises:
        FolderNotFoundError: If missing or owned by someone else.
    """
    folder = get_folder(folder_id, owner)
    subfolders = Folder.objects.filter(user=owner, parent=folder)
    files = File.objects.filter(user=owner, folder=folder)
    return subfolders, files


def _descendant_levels(folder: Folder) -> list[list[uuid.UUID]]:
    """Enumerate descendant folder IDs level by level.

    Uses an explicit worklist so deep trees never grow the call stack.
    Children of a whole level are fetched with one query.

    Args:
        folder: Folder whose subtree to walk (not included in result).

    Returns:
        One list of IDs per level below the folder, shallowest first.

    Raises:
        FolderModifiedError: If a level below FOLDER_MAX_DEPTH holds
            folders. Creation and moves never build such trees, so this
            only happens if the parent links were corrupted.
    """
    levels: list[list[uuid.UUID]] = []
    frontier = [folder.id]

    while frontier:
        frontier = list(
            Folder.objects.filter(
                user_id=folder.user_id,
                parent_id__in=frontier,
            ).values_list('id', flat=True),
        )
        if not frontier:
            break
        if len(levels) >= settings.FOLDER_MAX_DEPTH:
            raise FolderModifiedError(
                f'Folder {folder.id} is nested deeper than '
                f'{settings.FOLDER_MAX_DEPTH} levels',
                resource_id=folder.id,
                resource_kind='folder',
            )
        levels.append(frontier)

    return levels


def collect_descendant_ids(folder: Folder) -> list[uuid.UUID]:
    """Enumerate all descendant folder IDs, breadth-first.

    Args:
        folder: Folder whose subtree to walk (not included in result).

    Returns:
        Descendant IDs, shallowest first.

    Raises:
        FolderModifiedError: If the subtree is deeper than
            FOLDER_MAX_DEPTH.
    """
    return [
        descendant_id
        for level in _descendant_levels(folder)
        for descendant_id in level
    ]


def _count_ancestors(folder: Folder) -> int:
    """Count the folders above ``folder``, stopping past the depth cap.

    Args:
        folder: Folder to start from.

    Returns:
        Number of ancestors, at most FOLDER_MAX_DEPTH + 1.
    """
    ancestors = 0
    parent_id = folder.parent_id
    while parent_id is not None and ancestors <= settings.FOLDER_MAX_DEPTH:
        ancestors += 1
        parent_id = Folder.objects.filter(id=parent_id).values_list(
            'parent_id',
            flat=True,
        ).first()
    return ancestors


def _check_nesting(parent: Folder, subtree_height: int = 0) -> None:
    """Reject placing a subtree under ``parent`` past FOLDER_MAX_DEPTH.

    Args:
        parent: Folder receiving the new or moved folder.
        subtree_height: Levels below the placed folder.

    Raises:
        InvalidParentError: If the deepest folder would end up with more
            than FOLDER_MAX_DEPTH ancestors.
    """
    deepest = _count_ancestors(parent) + 1 + subtree_height
    if deepest > settings.FOLDER_MAX_DEPTH:
        raise InvalidParentError(
            f'Folders cannot be nested deeper than '
            f'{settings.FOLDER_MAX_DEPTH} levels',
            resource_id=parent.id,
            resource_kind='folder',
        )


def delete_folder(folder_id: uuid.UUID | str, owner: _User) -> int:
    """Delete a folder with all descendant folders and contained files.

    1. Verify ownership.
    2. Enumerate every descendant folder.
    3. Delete each file contained in the folder or a descendant through
       ``delete_file``, so storage cleanup and quota release happen for
       every file.
    4. Delete descendant folder rows, deepest first.
    5. Delete the folder itself.

    The operation is not transactional. The first error stops it and is
    raised; files already deleted stay deleted. Calling it again finishes
    the job.

    Args:
        folder_id: ID of the folder to delete.
        owner: Owner of the folder.

    Returns:
        Number of files deleted.

    Raises:
        FolderNotFoundError: If missing or owned by someone else.
        FolderModifiedError: If a file or folder appeared inside the
            subtree after it was enumerated.
    """
    folder = get_folder(folder_id, owner)
    descendant_ids = collect_descendant_ids(folder)
    folder_ids = [folder.id, *descendant_ids]

    logger.info(
        'Deleting folder %s with %d descendant folders',
        folder.id,
        len(descendant_ids),
    )

    deleted_files = 0
    for contained_id in folder_ids:
        file_ids = list(
            File.objects.filter(
                user=owner,
                folder_id=contained_id,
            ).values_list('id', flat=True),
        )
        for file_id in file_ids:
            delete_file(file_id, owner)
            deleted_files += 1

    # Deepest first, then the folder itself
    for doomed_id in reversed(folder_ids):
        _delete_folder_row(doomed_id)

    logger.info(
        'Folder deleted: %s (%d folders, %d files)',
        folder.id,
        len(folder_ids),
        deleted_files,
    )
    return deleted_files


def _delete_folder_row(folder_id: uuid.UUID) -> None:
    """Delete one folder row that should be empty by now.

    Args:
        folder_id: Folder to delete.

    Raises:
        FolderModifiedError: If something still references the folder.
    """
    try:
        with transaction.atomic():
            Folder.objects.filter(id=folder_id).delete()
    except RestrictedError as error:
        logger.warning(
            'Folder %s gained children during delete, retry required',
            folder_id,
        )
        raise FolderModifiedError(
            f'Folder {folder_id} changed while being deleted',
            resource_id=folder_id,
            resource_kind='folder',
        ) from error


def rename_folder(
    folder_id: uuid.UUID | str,
    owner: _User,
    new_name: str,
) -> Folder:
    """Change the name of a folder.

    Args:
        folder_id: ID of the folder.
        owner: Owner of the folder.
        new_name: New name.

    Returns:
        Updated Folder instance.
    """
    folder = get_folder(folder_id, owner)
    folder.name = validate_name(new_name)
    folder.save(update_fields=['name', 'modified_at'])
    return folder


def move_folder(
    folder_id: uuid.UUID | str,
    owner: _User,
    new_parent_id: uuid.UUID | str | None,
) -> Folder:
    """Move a folder under a new parent.

    Args:
        folder_id: ID of the folder to move.
        owner: Owner of both folders.
        new_parent_id: Destination parent, None to make it a root.

    Returns:
        Updated Folder instance.

    Raises:
        FolderNotFoundError: If the folder is missing or foreign.
        InvalidParentError: If the destination is missing, foreign, the
            folder itself or one of its descendants, or the subtree
            would end up deeper than FOLDER_MAX_DEPTH.
    """
    folder = get_folder(folder_id, owner)
    new_parent = _load_parent(new_parent_id, owner)

    if new_parent is not None:
        levels = _descendant_levels(folder)
        forbidden = {folder.id, *(item for level in levels for item in level)}
        if new_parent.id in forbidden:
            raise InvalidParentError(
                'Cannot move a folder into itself or its descendants',
                resource_id=new_parent.id,
                resource_kind='folder',
            )
        _check_nesting(new_parent, subtree_height=len(levels))

    folder.parent = new_parent
    folder.save(update_fields=['parent', 'modified_at'])
    logger.info('Folder moved: %s -> parent %s', folder.id, new_parent_id)
    return folder
