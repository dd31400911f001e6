"""File storage, quota and sharing settings."""

from server.settings.components import config

# Quota assigned to users on first use: 5 GB in bytes
DEFAULT_STORAGE_QUOTA_BYTES = config(
    'DEFAULT_STORAGE_QUOTA_BYTES',
    cast=int,
    default=5 * 1024 * 1024 * 1024,
)

# Lifetime of presigned download URLs, seconds
FILE_SIGNED_URL_TTL = config('FILE_SIGNED_URL_TTL', cast=int, default=900)

# Traversal guard for cascading folder deletion
FOLDER_MAX_DEPTH = config('FOLDER_MAX_DEPTH', cast=int, default=256)

# Random bytes per link-share token (32 bytes = 256 bits)
SHARE_TOKEN_BYTES = config('SHARE_TOKEN_BYTES', cast=int, default=32)
