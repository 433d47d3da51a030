"""
Front Desk – Django Settings (Infrastructure Only)
====================================================
Django is the container for the ORM-backed event log and the
settings the engine reads (FRONTDESK). The engine's structure is not
dictated by Django: derivation code never imports it.

Environment overrides:
- FRONTDESK_DB_PATH          sqlite file location
- FRONTDESK_SECRET_KEY       Django secret key
- FRONTDESK_LOG_LEVEL        level for the frontdesk.* loggers
- FRONTDESK_POLL_SECONDS     re-derivation interval
- FRONTDESK_TIME_ZONE        hotel business time zone
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("FRONTDESK_SECRET_KEY", "frontdesk-dev-key-replace-before-deployment")

DEBUG = os.environ.get("FRONTDESK_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "core.event_store",
]

MIDDLEWARE = []

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("FRONTDESK_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Front Desk Engine ─────────────────────────────────────────
# Read by core.config.frontdesk.load_frontdesk_settings().
FRONTDESK = {
    "POLL_INTERVAL_SECONDS": int(os.environ.get("FRONTDESK_POLL_SECONDS", "60")),
    "DEFAULT_CHECK_IN_TIME": "14:00",
    "DEFAULT_CHECK_OUT_TIME": "11:00",
    "BUSINESS_TIME_ZONE": os.environ.get("FRONTDESK_TIME_ZONE", "UTC"),
    "ENTITY_KIND": "front_desk",
    "INVENTORY_ENTITY_KIND": "storekeeper",
}

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "frontdesk": {
            "handlers": ["console"],
            "level": os.environ.get("FRONTDESK_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
        "apscheduler": {
            "handlers": ["console"],
            "level": "WARNING",
        },
    },
}
