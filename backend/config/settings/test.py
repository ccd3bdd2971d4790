"""
Test settings for the BOM engine project.

SQLite, local memory cache and eager Celery; no external services.
"""

from .base import *

DEBUG = False
SECRET_KEY = 'test-secret-key'
ALLOWED_HOSTS = ['*']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'bom-test-cache',
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = None

BOM_ENGINE = {
    **BOM_ENGINE,
    'CONTENTION_BACKOFF_SECONDS': 0,
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

# No log files in tests
for logger_config in LOGGING['loggers'].values():
    logger_config['handlers'] = ['console']
