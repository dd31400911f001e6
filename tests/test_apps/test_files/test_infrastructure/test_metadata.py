"""Tests for metadata utilities."""

import uuid
from datetime import UTC, datetime

import pytest
from django.core.exceptions import ValidationError

from server.apps.files.infrastructure.metadata import (
    detect_mime_type,
    generate_storage_key,
    validate_name,
)


def test_detect_mime_type():
    """Test MIME type detection from filename."""
    assert detect_mime_type('test.pdf') == 'application/pdf'
    assert detect_mime_type('test.txt') == 'text/plain'
    assert detect_mime_type('test.jpg') == 'image/jpeg'
    assert detect_mime_type('test.png') == 'image/png'


def test_detect_mime_type_unknown():
    """Test MIME type detection for unknown extension."""
    assert detect_mime_type('test.unknown') == 'application/octet-stream'
    assert detect_mime_type('Makefile') == 'application/octet-stream'


def test_generate_storage_key_layout():
    """Test keys are grouped by owner and upload day."""
    file_id = uuid.UUID('12345678-1234-5678-1234-567812345678')
    now = datetime(2024, 3, 7, 15, 30, tzinfo=UTC)

    key = generate_storage_key(42, file_id, now=now)

    assert key == '42/2024/03/07/12345678-1234-5678-1234-567812345678'


def test_generate_storage_key_ignores_name():
    """Test keys differ for different files uploaded the same day."""
    now = datetime(2024, 3, 7, tzinfo=UTC)

    first = generate_storage_key(1, uuid.uuid4(), now=now)
    second = generate_storage_key(1, uuid.uuid4(), now=now)

    assert first != second


def test_validate_name_strips_whitespace():
    """Test names are returned without surrounding whitespace."""
    assert validate_name('  report.pdf ') == 'report.pdf'


@pytest.mark.parametrize('name', [
    '',
    '   ',
    '.',
    '..',
    'a/b',
    'a\\b',
    'x' * 256,
])
def test_validate_name_rejects(name):
    """Test invalid names raise ValidationError."""
    with pytest.raises(ValidationError):
        validate_name(name)


def test_validate_name_max_length():
    """Test a name of exactly 255 characters is accepted."""
    assert validate_name('x' * 255) == 'x' * 255
