from .base import *

DEBUG = False
SECRET_KEY = "test-barn-stats-secret-key"
ALLOWED_HOSTS = ["*"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    },
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "barn-stats-tests",
    },
}

EFFECTS_MODE = "inline"
GENAI_CONFIG = GenAISettings(API_KEY="", TIMEOUT_S=1.0)
