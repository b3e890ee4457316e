"""Django settings for the Compass project."""

from pathlib import Path

import environ

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DEBUG=(bool, False),
)
environ.Env.read_env(BASE_DIR / ".env")

SECRET_KEY = env("DJANGO_SECRET_KEY", default="django-insecure-compass-dev")
DEBUG = env("DEBUG")
ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    "rest_framework",
    "assistant",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

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

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": env.db("DATABASE_URL", default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.redis.RedisCache",
        "LOCATION": env("REDIS_URL", default="redis://localhost:6379/0"),
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "UNAUTHENTICATED_USER": None,
}

# Logging
LOG_LEVEL = env("LOG_LEVEL", default="INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "loggers": {
        "assistant": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "integrations": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}

# Jira
JIRA_URL = env("JIRA_URL", default="https://example.atlassian.net")
JIRA_USER = env("JIRA_USER", default="")
JIRA_API_TOKEN = env("JIRA_API_TOKEN", default="")
JIRA_PROJECT_KEY = env("JIRA_PROJECT_KEY", default="NIHK")
JIRA_TIMEOUT = env.float("JIRA_TIMEOUT", default=10.0)

# LLM
LLM_MODEL_PATH = env(
    "LLM_MODEL_PATH",
    default=str(BASE_DIR / "models" / "Phi-3.5-mini-instruct-Q4_K_M.gguf"),
)
LLM_N_CTX = env.int("LLM_N_CTX", default=4096)
LLM_N_THREADS = env.int("LLM_N_THREADS", default=2)

# Conversation sessions: "memory" keeps them in-process, "cache" uses CACHES["default"]
SESSION_STORE = env("SESSION_STORE", default="memory")
SESSION_TTL = env.int("SESSION_TTL", default=24 * 60 * 60)

# Seed for canned phrase selection; unset means non-deterministic
RESPONSE_SEED = env.int("RESPONSE_SEED", default=None)
