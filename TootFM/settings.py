# settings.py
from pathlib import Path
from datetime import timedelta
import os
from dotenv import load_dotenv
import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration
from sentry_sdk.integrations.celery import CeleryIntegration
# ---------------------- PATHS & ENV ----------------------
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv()

# ---------------------- API KEYS -------------------------
LAST_FM_API_KEY = os.getenv("LAST_FM_API_KEY")
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET")

# ---------------------- SECURITY / DEBUG ----------------------
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-change-me")
DEBUG = os.getenv("DEBUG", "True") == "True"
DEBUG_TOOLBAR = DEBUG and os.getenv("DEBUG_TOOLBAR", "False") == "True"
ALLOWED_HOSTS = ["127.0.0.1", "localhost", "host.docker.internal", "testserver"]
INTERNAL_IPS = ["127.0.0.1", "localhost"]
# ---------------------- CORS / CSRF ----------------------
# comma separated, frontend dev server by default
CORS_ALLOWED_ORIGINS = [
    origin for origin in os.getenv("CORS_ALLOWED_ORIGINS", "http://127.0.0.1:3000").split(",") if origin
]

# ---------------------- DJANGO CORE ----------------------
INSTALLED_APPS = [
    # Django
    "django_prometheus",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django.contrib.sites",

    # Third-party
    "corsheaders",
    "rest_framework",
    "rest_framework_simplejwt",
    "rest_framework_simplejwt.token_blacklist",
    "drf_spectacular",
    "drf_spectacular_sidecar",
    "allauth",
    "allauth.account",
    "allauth.socialaccount",
    "allauth.socialaccount.providers.spotify",
    "djoser",
    "django_celery_beat",
    "django_celery_results",

    # Local apps
    "users.apps.UsersConfig",
    "parties.apps.PartiesConfig",
]

SITE_ID = 1

MIDDLEWARE = [
    "django_prometheus.middleware.PrometheusBeforeMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "TootFM.middleware.JWTAuthCookieMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "allauth.account.middleware.AccountMiddleware",
    "django_prometheus.middleware.PrometheusAfterMiddleware",
]

if DEBUG_TOOLBAR:
    INSTALLED_APPS.append("debug_toolbar")
    MIDDLEWARE.insert(
        MIDDLEWARE.index("TootFM.middleware.JWTAuthCookieMiddleware") + 1,
        "debug_toolbar.middleware.DebugToolbarMiddleware",
    )

ROOT_URLCONF = "TootFM.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "TootFM.wsgi.application"


# ---------------------- DATABASE ----------------------
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("DATABASE_PATH", BASE_DIR / "db.sqlite3"),
    }
}


# ---------------------- CACHE (locks) ----------------------
REDIS_URL = os.getenv("REDIS_URL")

if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": REDIS_URL,
        }
    }
else:
    # per-process only, generation locks do not span workers
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        }
    }


# ---------------------- PASSWORD VALIDATORS ----------------------
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]


# ---------------------- INTERNATIONALIZATION ----------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


# ---------------------- STATIC FILES ----------------------
STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# ---------------------- USERS / AUTH ----------------------
AUTH_USER_MODEL = "users.User"
AUTHENTICATION_BACKENDS = [
    "django.contrib.auth.backends.ModelBackend",
    "allauth.account.auth_backends.AuthenticationBackend",
]


# ---------------------- DRF / REST ----------------------
REST_FRAMEWORK = {
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.IsAuthenticated"],

    # SimpleJWT (Authorization: Bearer <token>)
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),

    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

DJOSER = {
    "LOGIN_FIELD": "email",
    "SERIALIZERS": {
        "user_create": "users.serializers.CustomRegisterSerializer",
        "user": "users.serializers.UserSerializer",
        "current_user": "users.serializers.UserSerializer",
    },
}


# ---------------------- SIMPLE JWT ----------------------
SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=15),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
    "ROTATE_REFRESH_TOKENS": True,
    "BLACKLIST_AFTER_ROTATION": True,
    "UPDATE_LAST_LOGIN": True,
}


# ---------------------- ALLAUTH / SOCIAL ----------------------
ACCOUNT_USER_MODEL_USERNAME_FIELD = None
ACCOUNT_LOGIN_METHODS = {"email"}
ACCOUNT_SIGNUP_FIELDS = ["email*", "password1*", "password2*"]
ACCOUNT_EMAIL_VERIFICATION = os.getenv("ACCOUNT_EMAIL_VERIFICATION", "optional")

SOCIALACCOUNT_PROVIDERS = {
    "spotify": {
        "APP": {
            "client_id": SPOTIFY_CLIENT_ID,
            "secret": SPOTIFY_CLIENT_SECRET,
        },
        "SCOPE": [
            # top tracks feed the music analysis
            "user-top-read",
            "user-read-email",
        ],
        "AUTH_PARAMS": {"show_dialog": False},
    }
}

LOGIN_URL = "/auth/jwt/create/"
LOGIN_REDIRECT_URL = os.getenv("FRONTEND_URL", "http://127.0.0.1:3000") + "/profile"


# ---------------------- SPECTACULAR / SWAGGER ----------------------
SPECTACULAR_SETTINGS = {
    "TITLE": "tootFM",
    "DESCRIPTION": "Party playlists built from members' music profiles",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "SWAGGER_UI_DIST": "SIDECAR",
    "SWAGGER_UI_FAVICON_HREF": "SIDECAR",
    "REDOC_DIST": "SIDECAR",
}


# ---------------------- TOOTFM ----------------------
TOOTFM = {
    # ranked list reported back in stats.totalTracks
    "TOP_TRACKS_LIMIT": int(os.getenv("TOOTFM_TOP_TRACKS_LIMIT", 30)),
    # rows written per generation run
    "PLAYLIST_LIMIT": int(os.getenv("TOOTFM_PLAYLIST_LIMIT", 20)),
    # "replace" deletes the previous generated rows, "append" keeps them
    "PLAYLIST_REGENERATION": os.getenv("TOOTFM_PLAYLIST_REGENERATION", "replace"),
    "GENERATION_LOCK_TIMEOUT": 120,
    "ANALYSIS_LOCK_TIMEOUT": 900,
    "PARTY_CODE_LENGTH": 6,
    "PARTY_CODE_ATTEMPTS": 10,
    "PARTY_MAX_MEMBERS": 50,
}


# ---------------------- EMAIL ----------------------
EMAIL_BACKEND = os.getenv("EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend")


# ---------------------- CELERY ----------------------
CELERY_BROKER_URL = REDIS_URL or "redis://localhost:6379/0"
CELERY_RESULT_BACKEND = "django-db"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TASK_TIME_LIMIT = 10 * 60
CELERY_TIMEZONE = TIME_ZONE


# ---------------------- LOGGING / SENTRY ----------------------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.getenv("LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django.db.backends": {"level": "WARNING"},
        "parties": {"level": os.getenv("PARTIES_LOG_LEVEL", "INFO")},
    },
}

SENTRY_DSN = os.getenv("SENTRY_DSN")

if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration(), CeleryIntegration()],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
        send_default_pii=False,
        environment=os.getenv("ENV", "local"),
    )
