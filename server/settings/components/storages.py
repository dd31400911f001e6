"""Django storage configuration for object storage backends.

User files go to an S3-compatible bucket (MinIO locally, any S3 provider
in production) through ``FileStorage``. Setting ``STORAGE_BACKEND=local``
switches to ``LocalFileStorage`` under ``MEDIA_ROOT`` for development
without a bucket.
"""

from typing import Any, Final

from botocore.config import Config

from server.settings.components import BASE_DIR, config

MEDIA_ROOT = config(
    'MEDIA_ROOT',
    default=str(BASE_DIR.joinpath('media')),
)
MEDIA_URL = '/media/'

STORAGE_BACKEND = config('STORAGE_BACKEND', default='s3')

# Client-side limits so a hung bucket never blocks a worker forever
_S3_CLIENT_CONFIG: Final = Config(
    connect_timeout=config('AWS_S3_CONNECT_TIMEOUT', cast=int, default=5),
    read_timeout=config('AWS_S3_READ_TIMEOUT', cast=int, default=60),
    retries={
        'max_attempts': config('AWS_S3_MAX_ATTEMPTS', cast=int, default=3),
        'mode': 'standard',
    },
)

_BACKENDS: Final[dict[str, dict[str, Any]]] = {
    's3': {
        'BACKEND': 'server.apps.files.infrastructure.storage.FileStorage',
        'OPTIONS': {
            'bucket_name': config(
                'AWS_STORAGE_BUCKET_NAME',
                default='file-vault',
            ),
            'access_key': config('AWS_ACCESS_KEY_ID', default='minioadmin'),
            'secret_key': config(
                'AWS_SECRET_ACCESS_KEY',
                default='minioadmin',
            ),
            'endpoint_url': config(
                'AWS_S3_ENDPOINT_URL',
                default=None,
            ),
            'region_name': config(
                'AWS_S3_REGION_NAME',
                default='us-east-1',
            ),
            'client_config': _S3_CLIENT_CONFIG,
            'file_overwrite': False,  # Prevent accidental overwrites
            'default_acl': None,  # Inherit bucket ACL
            'querystring_auth': True,  # Download URLs are presigned
        },
    },
    'local': {
        'BACKEND': 'server.apps.files.infrastructure.storage.LocalFileStorage',
        'OPTIONS': {
            'location': MEDIA_ROOT,
            'base_url': MEDIA_URL,
        },
    },
}

STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': _BACKENDS[STORAGE_BACKEND],
    'staticfiles': {
        # Keep static files separate from user files
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}
