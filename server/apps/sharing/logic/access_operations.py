"""Access resolution: the single allow/deny decision point.

Combines ownership, the public flag of files and active USER shares.
Link shares are resolved separately by token.
"""

import logging
import uuid
from typing import Any

from server.apps.files.exceptions import (
    AccessDeniedError,
    FileDoesNotExistError,
)
from server.apps.files.models import File
from server.apps.sharing.exceptions import InvalidResourceTypeError
from server.apps.sharing.logic.share_operations import (
    check_direct_access,
    get_resource,
    resolve_by_token,
)
from server.apps.sharing.models import ResourceKind

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


def can_access(
    user: _User | None,
    resource_id: uuid.UUID | str,
    resource_kind: str,
) -> bool:
    """Decide whether a user may read a file or folder.

    Args:
        user: User asking, None for anonymous.
        resource_id: ID of the file or folder.
        resource_kind: 'file' or 'folder'.

    Returns:
        True if the user owns the resource, the resource is a public
        file, or an active USER share grants it. Missing resources are
        never accessible.
    """
    resource = get_resource(resource_id, resource_kind)
    if resource is None:
        logger.debug('Access check on missing %s %s', resource_kind, resource_id)
        return False

    if user is not None and user.is_authenticated:
        if resource.user_id == user.pk:
            return True

    if isinstance(resource, File) and resource.is_public:
        return True

    return check_direct_access(user, resource_id, resource_kind)


def get_accessible_file(user: _User | None, file_id: uuid.UUID | str) -> File:
    """Load a file for any principal ``can_access`` allows.

    Args:
        user: User asking, None for anonymous.
        file_id: ID of the file.

    Returns:
        File instance.

    Raises:
        FileDoesNotExistError: If the file does not exist.
        AccessDeniedError: If the user may not read it.
    """
    file_instance = File.objects.filter(id=file_id).first()
    if file_instance is None:
        raise FileDoesNotExistError(file_id)
    if not can_access(user, file_id, ResourceKind.FILE):
        raise AccessDeniedError(
            'No access to this file',
            resource_id=file_id,
            resource_kind=ResourceKind.FILE,
        )
    return file_instance


def resolve_by_share_token(token: str, password: str | None = None) -> File:
    """Load the file behind a link share.

    The access is recorded on the share before the file is loaded.

    Args:
        token: Share token from the link.
        password: Password supplied by the visitor, if any.

    Returns:
        Shared File instance.

    Raises:
        InvalidResourceTypeError: If the share points at a folder.
        FileDoesNotExistError: If the shared file no longer exists.
    """
    share = resolve_by_token(token, password)

    if share.resource_kind != ResourceKind.FILE:
        raise InvalidResourceTypeError(
            'Share does not point at a file',
            resource_id=share.resource_id,
            resource_kind=share.resource_kind,
        )

    file_instance = File.objects.filter(id=share.resource_id).first()
    if file_instance is None:
        raise FileDoesNotExistError(share.resource_id)
    return file_instance
