import os

from celery.schedules import crontab

from tasks.config import TASK_CONFIG

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


SECRET_KEY = os.environ.get(
    "SECRET_KEY", "__$1ud47e&nyso5h5o3fwnqu4+hfqcply9h$k*h2s34)hn5@nc"
)


DEBUG = os.environ.get("DEBUG", "True").lower() in ("1", "true", "yes")

ALLOWED_HOSTS = [host for host in os.environ.get("ALLOWED_HOSTS", "").split(",") if host]


# Application definition

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django_celery_results",
    "apps.corecode",
    "apps.students",
    "apps.result",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "school_app.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "school_app.wsgi.application"


# Database
# https://docs.djangoproject.com/en/stable/ref/settings/#databases

DATABASES = {
    "default": {
        "ENGINE": os.environ.get("SMS_DB_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("SMS_DB_NAME", os.path.join(BASE_DIR, "db.sqlite3")),
    }
}


# Cache (also holds the promotion batch locks)

if os.environ.get("SMS_CACHE_URL"):
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": os.environ["SMS_CACHE_URL"],
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "sms-default",
        }
    }


# Password validation
# https://docs.djangoproject.com/en/stable/ref/settings/#auth-password-validators

AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.CommonPasswordValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.NumericPasswordValidator",
    },
]


# Internationalization

LANGUAGE_CODE = "en-us"

TIME_ZONE = "UTC"

USE_I18N = True

USE_TZ = True


STATIC_URL = "/static/"

STATIC_ROOT = os.path.join(BASE_DIR, "staticfiles")

LOGIN_URL = "/admin/login/"

SESSION_COOKIE_AGE = 10800


LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "level": "DEBUG" if DEBUG else "INFO",
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
        "file": {
            "level": "INFO",
            "class": "logging.handlers.TimedRotatingFileHandler",
            "when": "W6",
            "interval": 4,
            "backupCount": 3,
            "encoding": "utf8",
            "delay": True,
            "filename": os.environ.get("SMS_LOG_FILE", os.path.join(BASE_DIR, "debug.log")),
            "formatter": "verbose",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console", "file"],
            "level": "INFO",
            "propagate": False,
        },
        "apps": {
            "handlers": ["console", "file"],
            "level": "DEBUG" if DEBUG else "INFO",
            "propagate": False,
        },
        "tasks": {
            "handlers": ["console", "file"],
            "level": "INFO",
            "propagate": False,
        },
    },
}

DEFAULT_AUTO_FIELD = "django.db.models.AutoField"


# Promotion policy (see apps.corecode.utils.PROMOTION_DEFAULTS)

PROMOTION = {
    "TERMS_PER_YEAR": 3,
    "DEFAULT_PASSING_THRESHOLD": 50,
    "FIRST_TERM_START": (9, 1),
    "FIRST_TERM_END": (12, 15),
    "NEXT_TERM_LENGTH_MONTHS": 3,
    "LOCK_TIMEOUT": 30 * 60,
}


# Celery

CELERY_BROKER_URL = TASK_CONFIG["BROKER_URL"]
CELERY_RESULT_BACKEND = TASK_CONFIG["RESULT_BACKEND"]
CELERY_ACCEPT_CONTENT = TASK_CONFIG["ACCEPT_CONTENT"]
CELERY_TASK_SERIALIZER = TASK_CONFIG["TASK_SERIALIZER"]
CELERY_RESULT_SERIALIZER = TASK_CONFIG["RESULT_SERIALIZER"]
CELERY_TIMEZONE = TASK_CONFIG["TIMEZONE"]
CELERY_TASK_TRACK_STARTED = TASK_CONFIG["TASK_TRACK_STARTED"]
CELERY_TASK_TIME_LIMIT = TASK_CONFIG["TASK_TIME_LIMIT"]
CELERY_WORKER_CONCURRENCY = TASK_CONFIG["WORKER_CONCURRENCY"]
# Run tasks in-process where there is no worker (cPanel)
CELERY_TASK_ALWAYS_EAGER = not TASK_CONFIG["USE_CELERY"]

CELERY_BEAT_SCHEDULE = {
    "run-scheduled-promotions": {
        "task": "promotion.run_scheduled_promotions",
        "schedule": crontab(hour=TASK_CONFIG["PROMOTION_SWEEP_HOUR"], minute=0),
    },
}


# Site Default values

SCHOOL_NAME = os.environ.get("SCHOOL_NAME", "School Management")
SITE_URL = os.environ.get("SITE_URL", "http://localhost:8000")
ADMINS = [
    ("Admin", email) for email in os.environ.get("SMS_ADMIN_EMAILS", "").split(",") if email
]
