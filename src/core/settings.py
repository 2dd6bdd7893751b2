"""Django settings for the StoryNest API.

Environment-driven configuration for Postgres, Redis, JWT, email, OAuth and
security defaults.
"""
import os
from pathlib import Path
from urllib.parse import urlparse

from django.core.exceptions import ImproperlyConfigured

BASE_DIR = Path(__file__).resolve().parent.parent


def _get_env(name: str, default: str | None = None) -> str | None:
    """Read an environment variable with an optional fallback."""
    return os.environ.get(name, default)


def _get_list(name: str, default: str) -> list[str]:
    """Read a comma-separated environment variable as a list of strings."""
    return [item.strip() for item in (_get_env(name, default) or "").split(",") if item.strip()]


def _parse_database_url(url: str) -> dict:
    """Parse a PostgreSQL-style DATABASE_URL into a Django DATABASES entry."""
    parsed = urlparse(url)
    return {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": parsed.path.lstrip("/"),
        "USER": parsed.username,
        "PASSWORD": parsed.password,
        "HOST": parsed.hostname,
        "PORT": parsed.port or "5432",
    }


SECRET_KEY = _get_env("SECRET_KEY", "dev-secret-key-change-me")
DEBUG = _get_env("DEBUG", "True") == "True"
if not DEBUG and SECRET_KEY in ("change-me", "dev-secret-key-change-me"):
    raise ImproperlyConfigured("SECRET_KEY must be set in production")
ALLOWED_HOSTS = _get_list("ALLOWED_HOSTS", "localhost,127.0.0.1,0.0.0.0")

# Access tokens are signed with their own secret; the process refuses to start
# without it.
JWT_SECRET = _get_env("JWT_SECRET")
if not JWT_SECRET:
    raise ImproperlyConfigured("JWT_SECRET must be defined in environment variables")
JWT_ACCESS_TTL_MINUTES = int(_get_env("JWT_ACCESS_TTL_MINUTES", "15"))
JWT_REFRESH_TTL_DAYS = int(_get_env("JWT_REFRESH_TTL_DAYS", "7"))
BCRYPT_ROUNDS = int(_get_env("BCRYPT_ROUNDS", "12"))

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    "corsheaders",
    "rest_framework",
    "drf_spectacular",
    "core",
    "authentication",
    "access_control",
    "categories",
    "stories",
    "comments",
    "scripts",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    # JWTAuthMiddleware runs after the common middlewares
    "core.middleware.JWTAuthMiddleware",
]

ROOT_URLCONF = "core.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
            ],
        },
    },
]

WSGI_APPLICATION = "core.wsgi.application"
ASGI_APPLICATION = "core.asgi.application"

DATABASE_URL = _get_env("DATABASE_URL")
if DATABASE_URL:
    DATABASES = {"default": _parse_database_url(DATABASE_URL)}
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": _get_env("POSTGRES_DB", "storynest"),
            "USER": _get_env("POSTGRES_USER", "storynest"),
            "PASSWORD": _get_env("POSTGRES_PASSWORD", "storynest"),
            "HOST": _get_env("POSTGRES_HOST", "localhost"),
            "PORT": _get_env("POSTGRES_PORT", "5432"),
        }
    }

REDIS_URL = _get_env("REDIS_URL", "redis://localhost:6379/0")
CACHE_TTL_SECONDS = int(_get_env("CACHE_TTL_SECONDS", "60"))
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.redis.RedisCache",
        "LOCATION": REDIS_URL,
        "KEY_PREFIX": "storynest",
        "TIMEOUT": CACHE_TTL_SECONDS,
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
MEDIA_URL = _get_env("MEDIA_URL", "/media/")
MEDIA_ROOT = Path(_get_env("MEDIA_ROOT", str(BASE_DIR / "media")))

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_USER_MODEL = "authentication.User"

FRONTEND_URL = _get_env("FRONTEND_URL", "http://localhost:3000")
CORS_ALLOWED_ORIGINS = _get_list("CORS_ALLOWED_ORIGINS", FRONTEND_URL)
CORS_ALLOW_CREDENTIALS = True

EMAIL_BACKEND = _get_env("EMAIL_BACKEND", "django.core.mail.backends.smtp.EmailBackend")
EMAIL_HOST = _get_env("SMTP_HOST", "localhost")
EMAIL_PORT = int(_get_env("SMTP_PORT", "587"))
EMAIL_HOST_USER = _get_env("SMTP_USER", "")
EMAIL_HOST_PASSWORD = _get_env("SMTP_PASSWORD", "")
EMAIL_USE_TLS = _get_env("SMTP_USE_TLS", "True") == "True"
DEFAULT_FROM_EMAIL = f"StoryNest <{_get_env('SMTP_FROM', 'no-reply@storynest.local')}>"

GOOGLE_CLIENT_ID = _get_env("GOOGLE_CLIENT_ID", "")
SUPER_ADMIN_EMAIL = _get_env("SUPER_ADMIN_EMAIL")

IMAGE_HOST_BACKEND = _get_env("IMAGE_HOST_BACKEND", "core.images.StorageImageHost")
DEFAULT_COVER_IMAGE = (
    "https://res.cloudinary.com/demo/image/upload/v1625864823/default-story-cover.jpg"
)

LOG_LEVEL = _get_env("LOG_LEVEL", "INFO")
LOG_FILE = _get_env("LOG_FILE")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django.request": {
            # Errors are already logged by the API exception handler.
            "level": "CRITICAL",
            "propagate": True,
        },
    },
}
if LOG_FILE:
    LOGGING["handlers"]["file"] = {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": LOG_FILE,
        "maxBytes": 5 * 1024 * 1024,
        "backupCount": 3,
        "formatter": "verbose",
    }
    LOGGING["root"]["handlers"].append("file")

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": ["core.authentication.MiddlewareUserAuthentication"],
    "DEFAULT_PERMISSION_CLASSES": [],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
        "rest_framework.parsers.MultiPartParser",
        "rest_framework.parsers.FormParser",
    ],
    "UNAUTHENTICATED_USER": "django.contrib.auth.models.AnonymousUser",
    "EXCEPTION_HANDLER": "core.exceptions.custom_exception_handler",
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "StoryNest API",
    "DESCRIPTION": (
        "OpenAPI schema for the StoryNest publishing backend: JWT access tokens, "
        "hashed refresh tokens, role-based moderation of stories and categories."
    ),
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "SERVE_PUBLIC": True,
    "APPEND_COMPONENTS": {
        "securitySchemes": {
            "bearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "bearerFormat": "JWT",
            }
        }
    },
    # Apply JWT bearer auth by default to operations unless overridden.
    "SECURITY": [{"bearerAuth": []}],
}
