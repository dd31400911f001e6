"""Shared fixtures for files app tests."""

from io import BytesIO

import boto3
import pytest
from django.contrib.auth import get_user_model
from moto import mock_aws

from server.apps.files.logic import file_operations
from server.apps.files.models import File, Folder, UserQuota

User = get_user_model()


@pytest.fixture
def user(db):
    """Create test user.

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
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def mock_s3():
    """Mock S3 service with file-vault bucket.

    Yields:
        boto3 S3 resource with file-vault bucket created.
    """
    with mock_aws():
        # Create S3 resource
        conn = boto3.resource('s3', region_name='us-east-1')

        # Create bucket
        conn.create_bucket(Bucket='file-vault')

        yield conn


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        Bytes uploaded by the tests.
    """
    return b'test file content'


@pytest.fixture
def small_quota(user):
    """Give the user a 1000 byte quota.

    Returns:
        UserQuota instance.
    """
    return UserQuota.objects.create(user=user, quota_bytes=1000)


@pytest.fixture
def make_file(user):
    """Factory for File records without stored content.

    Returns:
        Callable creating a File for the given owner and folder.
    """
    def factory(name='file.txt', size_bytes=100, folder=None, owner=None):
        owner = owner or user
        file_instance = File(
            user=owner,
            folder=folder,
            name=name,
            size_bytes=size_bytes,
            mime_type='text/plain',
        )
        file_instance.storage_key = f'{owner.pk}/test/{file_instance.id}'
        file_instance.save()
        return file_instance

    return factory


@pytest.fixture
def make_folder(user):
    """Factory for Folder records.

    Returns:
        Callable creating a Folder under an optional parent.
    """
    def factory(name, parent=None, owner=None):
        return Folder.objects.create(
            name=name,
            parent=parent,
            user=owner or user,
        )

    return factory


class FlakyStorage:
    """Storage double that fails selected operations."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.objects = {}
        self.rolled_back = []

    def _maybe_fail(self, operation):
        if operation in self.fail_on:
            raise ConnectionError(f'{operation} failed')

    def put(self, key, stream, size, content_type):
        self._maybe_fail('put')
        self.objects[key] = stream.read()
        return key

    def get(self, key):
        self._maybe_fail('get')
        return BytesIO(self.objects[key])

    def delete(self, name):
        self._maybe_fail('delete')
        self.objects.pop(name, None)

    def signed_url(self, key, ttl_seconds):
        self._maybe_fail('signed_url')
        return f'https://storage.test/{key}?expires={ttl_seconds}'

    def rollback_upload(self, key):
        self.rolled_back.append(key)
        self.objects.pop(key, None)


@pytest.fixture
def flaky_storage(monkeypatch):
    """Replace the object store used by file operations.

    Returns:
        Factory taking the operations that should fail.
    """
    def factory(*fail_on):
        storage = FlakyStorage(fail_on)
        monkeypatch.setattr(
            file_operations,
            'get_object_storage',
            lambda: storage,
        )
        return storage

    return factory
