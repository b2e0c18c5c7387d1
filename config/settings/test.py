"""
PharmaLedger — Test Settings

SQLite, in-memory cache, eager Celery and no retry backoff. Activated by
pytest through pyproject.toml:
  DJANGO_SETTINGS_MODULE=config.settings.test

Set DATABASE_URL to a PostgreSQL URL to run the threaded concurrency tests.

@file config/settings/test.py
"""

from .base import *  # noqa: F401, F403

DEBUG = False

SECRET_KEY = 'test-secret-key-not-for-production'

DATABASES = {
    'default': env.db('DATABASE_URL', default='sqlite://:memory:'),  # noqa: F405
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

REST_FRAMEWORK['DEFAULT_THROTTLE_CLASSES'] = []  # noqa: F405

STOCK_LEDGER_RETRY_BACKOFF_MS = 0

LOGGING['loggers']['pharmaledger']['propagate'] = True  # noqa: F405
