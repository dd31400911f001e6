"""Django settings for the storage service.

Settings are split into components and combined with
``django-split-settings``. Values come from the environment (or a
``config/.env`` file) through ``python-decouple``.
"""

from split_settings.tools import include

include(
    'components/common.py',
    'components/logging.py',
    'components/storages.py',
    'components/files.py',
)
