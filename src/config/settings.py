"""Django settings for toll estimator project."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
PROJECT_ROOT = BASE_DIR.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "change-me-in-production")
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = [host for host in os.getenv("DJANGO_ALLOWED_HOSTS", "").split(",") if host]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    "toll_estimator",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": PROJECT_ROOT / "db.sqlite3",
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "toll-estimator-cache",
    }
}

LOG_LEVEL = os.getenv("TOLL_ESTIMATOR_LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "toll_estimator": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}

OSRM_BASE_URL = os.getenv("OSRM_BASE_URL", "https://router.project-osrm.org")
OSRM_TIMEOUT_SECONDS = float(os.getenv("OSRM_TIMEOUT_SECONDS", "12"))
OSRM_RETRY_COUNT = int(os.getenv("OSRM_RETRY_COUNT", "2"))

GEOCODING_BASE_URL = os.getenv("GEOCODING_BASE_URL", "https://nominatim.openstreetmap.org")
GEOCODING_USER_AGENT = os.getenv("GEOCODING_USER_AGENT", "toll-estimator/1.0")
GEOCODING_TIMEOUT_SECONDS = float(os.getenv("GEOCODING_TIMEOUT_SECONDS", "12"))
GEOCODING_RETRY_COUNT = int(os.getenv("GEOCODING_RETRY_COUNT", "2"))
GEOCODING_LANGUAGE = os.getenv("GEOCODING_LANGUAGE", "en")

COUNTRY_RESOLVER_MAX_WORKERS = int(os.getenv("COUNTRY_RESOLVER_MAX_WORKERS", "1"))
COUNTRY_RESOLVER_DELAY_SECONDS = float(os.getenv("COUNTRY_RESOLVER_DELAY_SECONDS", "0.1"))

TUNNEL_DETECTION_BASE_URL = os.getenv("TUNNEL_DETECTION_BASE_URL", "https://api.openai.com/v1")
TUNNEL_DETECTION_API_KEY = os.getenv("TUNNEL_DETECTION_API_KEY", "")
TUNNEL_DETECTION_MODEL = os.getenv("TUNNEL_DETECTION_MODEL", "gpt-4o-mini")
TUNNEL_DETECTION_TIMEOUT_SECONDS = float(os.getenv("TUNNEL_DETECTION_TIMEOUT_SECONDS", "20"))

SPECIAL_TOLL_RADIUS_KM = float(os.getenv("SPECIAL_TOLL_RADIUS_KM", "8"))

ROUTE_CACHE_TTL_SECONDS = int(os.getenv("ROUTE_CACHE_TTL_SECONDS", "600"))
GEOCODE_CACHE_TTL_SECONDS = int(os.getenv("GEOCODE_CACHE_TTL_SECONDS", "86400"))
FINGERPRINT_TTL_SECONDS = int(os.getenv("FINGERPRINT_TTL_SECONDS", "900"))
