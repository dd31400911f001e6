"""Shared fixtures for sharing app tests."""

import pytest
from django.contrib.auth import get_user_model

from server.apps.files.models import File, Folder
from server.apps.sharing.logic.share_operations import (
    create_link_share,
    create_user_share,
)
from server.apps.sharing.models import ResourceKind

User = get_user_model()


@pytest.fixture
def user(db):
    """Create the resource owner.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create a user who receives shares.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def stranger(db):
    """Create a user nothing is shared with.

    Returns:
        Third user instance.
    """
    return User.objects.create_user(
        username='stranger',
        password='testpass123',
        email='stranger@example.com',
    )


@pytest.fixture
def shared_file(user):
    """Private file owned by ``user``.

    Returns:
        File instance.
    """
    file_instance = File(
        user=user,
        name='report.pdf',
        size_bytes=100,
        mime_type='application/pdf',
    )
    file_instance.storage_key = f'{user.pk}/test/{file_instance.id}'
    file_instance.save()
    return file_instance


@pytest.fixture
def shared_folder(user):
    """Folder owned by ``user``.

    Returns:
        Folder instance.
    """
    return Folder.objects.create(name='docs', user=user)


@pytest.fixture
def link_share(user, shared_file):
    """LINK share of ``shared_file``.

    Returns:
        Share instance.
    """
    return create_link_share(user, shared_file.id, ResourceKind.FILE)


@pytest.fixture
def user_share(user, other_user, shared_file):
    """USER share of ``shared_file`` with ``other_user``.

    Returns:
        Share instance.
    """
    return create_user_share(
        user,
        shared_file.id,
        ResourceKind.FILE,
        other_user,
    )
