"""
Django settings for the survey logic project.

The survey logic engine is database-free; Django provides configuration and
logging, and Django REST Framework validates inbound rule definitions.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'insecure-dev-key-change-me')

DEBUG = os.environ.get('DJANGO_DEBUG', 'false').lower() == 'true'

ALLOWED_HOSTS = [h for h in os.environ.get('DJANGO_ALLOWED_HOSTS', '').split(',') if h]

INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'rest_framework',
    'surveys',
]

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

TIME_ZONE = 'UTC'
USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Conditional logic engine
SURVEY_LOGIC = {
    'SMILEY_SCALE': {
        'very_sad': 1,
        'sad': 2,
        'neutral': 3,
        'happy': 4,
        'very_happy': 5,
    },
    # Join used when a condition has no explicit AND/OR to the next one
    'DEFAULT_LOGICAL': os.environ.get('SURVEY_LOGIC_DEFAULT_LOGICAL', 'OR'),
    'RATING_MAX_DEFAULT': 10,
    'SMILEY_MAX_DEFAULT': 5,
    'SLIDER_MIN_DEFAULT': 0,
    'SLIDER_MAX_DEFAULT': 100,
}

LOG_LEVEL = os.environ.get('DJANGO_LOG_LEVEL', 'INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'surveys': {
            'level': LOG_LEVEL,
        },
    },
}
