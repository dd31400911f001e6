"""Tests for share cleanup signal handlers."""

from io import BytesIO

import pytest

from server.apps.files.logic import file_operations
from server.apps.files.logic.file_operations import delete_file, upload_file
from server.apps.files.logic.folder_operations import (
    create_folder,
    delete_folder,
)
from server.apps.sharing.exceptions import ShareNotFoundError
from server.apps.sharing.logic.share_operations import (
    create_link_share,
    create_user_share,
    resolve_by_token,
)
from server.apps.sharing.models import ResourceKind, Share


class _MemoryStorage:
    def __init__(self):
        self.objects = {}

    def put(self, key, stream, size, content_type):
        self.objects[key] = stream.read()
        return key

    def delete(self, name):
        self.objects.pop(name, None)


@pytest.fixture
def memory_storage(monkeypatch):
    """Keep uploaded content in memory.

    Returns:
        Storage double used by file operations.
    """
    storage = _MemoryStorage()
    monkeypatch.setattr(file_operations, 'get_object_storage', lambda: storage)
    return storage


def _upload(owner, folder=None):
    return upload_file(
        'shared.txt',
        3,
        'text/plain',
        BytesIO(b'abc'),
        owner,
        folder_id=folder.id if folder else None,
    )


@pytest.mark.django_db
def test_deleting_file_removes_its_shares(user, other_user, memory_storage):
    """Test shares of a deleted file stop resolving."""
    file_instance = _upload(user)
    link = create_link_share(user, file_instance.id, ResourceKind.FILE)
    create_user_share(user, file_instance.id, ResourceKind.FILE, other_user)

    delete_file(file_instance.id, user)

    assert not Share.objects.filter(resource_id=file_instance.id).exists()
    with pytest.raises(ShareNotFoundError):
        resolve_by_token(link.token)


@pytest.mark.django_db
def test_deleting_folder_removes_nested_shares(user, memory_storage):
    """Test shares inside a deleted subtree are removed too."""
    docs = create_folder('docs', user)
    archive = create_folder('archive', user, docs.id)
    nested_file = _upload(user, archive)
    create_link_share(user, docs.id, ResourceKind.FOLDER)
    create_link_share(user, archive.id, ResourceKind.FOLDER)
    create_link_share(user, nested_file.id, ResourceKind.FILE)

    delete_folder(docs.id, user)

    assert not Share.objects.exists()


@pytest.mark.django_db
def test_other_shares_survive(user, memory_storage):
    """Test deleting one file leaves shares of other files alone."""
    doomed = _upload(user)
    kept = _upload(user)
    create_link_share(user, doomed.id, ResourceKind.FILE)
    kept_share = create_link_share(user, kept.id, ResourceKind.FILE)

    delete_file(doomed.id, user)

    assert list(Share.objects.all()) == [kept_share]
