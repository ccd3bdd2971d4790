"""
Development settings for the BOM engine project.
"""

import os

from .base import *

# =============================================================================
# DEBUG
# =============================================================================
DEBUG = True

# =============================================================================
# ALLOWED HOSTS
# =============================================================================
ALLOWED_HOSTS = ['*']

# =============================================================================
# LOGGING - Development
# =============================================================================
os.makedirs(LOG_DIR, exist_ok=True)
LOGGING['root']['level'] = 'DEBUG'
for name in ('bom', 'domain', 'application', 'infrastructure'):
    LOGGING['loggers'][name]['level'] = 'DEBUG'

# =============================================================================
# CACHE / CELERY - Development Override (No Redis required)
# =============================================================================
# Use local memory cache for development (LocMemCache doesn't require Redis)
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'bom-dev-cache',
    }
}

CELERY_BROKER_URL = 'filesystem://'
CELERY_BROKER_TRANSPORT_OPTIONS = {
    'data_folder_in': os.path.join(BASE_DIR, 'broker', 'out'),
    'data_folder_out': os.path.join(BASE_DIR, 'broker', 'out'),
    'data_folder_processed': os.path.join(BASE_DIR, 'broker', 'processed'),
}
CELERY_RESULT_BACKEND = None
# Create broker directories if they don't exist
for folder in CELERY_BROKER_TRANSPORT_OPTIONS.values():
    os.makedirs(folder, exist_ok=True)
