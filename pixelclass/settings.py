"""
Django settings for the PixelClass project.

Values that differ between machines can be overridden with environment
variables (``PIXELCLASS_*``).
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get(
    "PIXELCLASS_SECRET_KEY",
    "django-insecure-pixelclass-development-key",
)

DEBUG = os.environ.get("PIXELCLASS_DEBUG", "1") == "1"

ALLOWED_HOSTS = os.environ.get("PIXELCLASS_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "classifier",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
]

ROOT_URLCONF = "pixelclass.urls"

WSGI_APPLICATION = "pixelclass.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": Path(os.environ.get("PIXELCLASS_DB_PATH", BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# ── Uploads ─────────────────────────────────────────────────────────────────

MAX_UPLOAD_SIZE = int(os.environ.get("PIXELCLASS_MAX_UPLOAD_SIZE", 10 * 1024 * 1024))
DATA_UPLOAD_MAX_MEMORY_SIZE = MAX_UPLOAD_SIZE * 4

# ── Training ────────────────────────────────────────────────────────────────

MODELS_ROOT = Path(os.environ.get("PIXELCLASS_MODELS_ROOT", BASE_DIR / "models"))
TRAINING_IMAGE_SIZE = int(os.environ.get("PIXELCLASS_IMAGE_SIZE", 224))
# "imagenet" downloads the MobileNet weights on first use; set to "none"
# for an offline, randomly initialised base.
TRANSFER_BASE_WEIGHTS = os.environ.get("PIXELCLASS_TRANSFER_WEIGHTS", "imagenet")
if TRANSFER_BASE_WEIGHTS.lower() == "none":
    TRANSFER_BASE_WEIGHTS = None

# ── Logging ─────────────────────────────────────────────────────────────────

LOG_LEVEL = os.environ.get("PIXELCLASS_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "classifier": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "training": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
}
