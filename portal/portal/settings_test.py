"""Settings used by the test-suite: SQLite, throwaway upload and log dirs."""
import os
import tempfile
from pathlib import Path

os.environ.setdefault("DB_ENGINE", "sqlite3")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="portal-logs-"))

from .settings import *  # noqa: F401,F403,E402

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

MEDIA_ROOT = Path(tempfile.mkdtemp(prefix="portal-uploads-"))
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {"null": {"class": "logging.NullHandler"}},
    "root": {"handlers": ["null"], "level": "WARNING"},
}
