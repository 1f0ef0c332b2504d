"""
Django settings for atyant_backend project.
"""
import os
from pathlib import Path
from datetime import timedelta
from decouple import config, Csv

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = config("SECRET_KEY", default="django-insecure-atyant-local-development-key")
DEBUG = config("DEBUG", default=False, cast=bool)

ALLOWED_HOSTS = config("ALLOWED_HOSTS", default="*", cast=Csv())

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'mentorship',
    'rest_framework',
    'corsheaders',
    'rest_framework_simplejwt',
    'channels',
    'chat',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',  # keep cors high up
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'mentorship.middleware.ContentModerationMiddleware',
]

ROOT_URLCONF = 'atyant_backend.urls'
AUTH_USER_MODEL = "mentorship.User"

# ==============================
# Database
# ==============================
if config('DB_NAME', default=''):
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': config('DB_NAME'),
            'USER': config('DB_USER', default='postgres'),
            'PASSWORD': config('DB_PASSWORD', default=''),
            'HOST': config('DB_HOST', default='localhost'),
            'PORT': config('DB_PORT', default='5432'),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator',},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator',},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator',},
]


LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True


STATIC_URL = '/static/'
STATIC_ROOT = os.path.join(BASE_DIR, 'staticfiles')

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ),
    'DEFAULT_THROTTLE_CLASSES': (
        'mentorship.throttles.ApiRateThrottle',
    ),
    'DEFAULT_THROTTLE_RATES': {
        'api': config('API_RATE_LIMIT', default='2000/hour'),
        'chat': config('CHAT_RATE_LIMIT', default='60/min'),
        'chat_info': config('CHAT_INFO_RATE_LIMIT', default='300/min'),
        'questions': config('QUESTION_RATE_LIMIT', default='120/hour'),
    },
    'TEST_REQUEST_DEFAULT_FORMAT': 'json',
}


SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=config('JWT_ACCESS_MINUTES', default=60, cast=int)),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'ROTATE_REFRESH_TOKENS': True,
    'UPDATE_LAST_LOGIN': True,
    'SIGNING_KEY': config('JWT_SECRET', default=SECRET_KEY),
    'AUTH_HEADER_TYPES': ('Bearer',),
    'AUTH_HEADER_NAME': 'HTTP_AUTHORIZATION',
    'USER_ID_FIELD': 'id',
    'USER_ID_CLAIM': 'user_id',
}

CORS_ALLOWED_ORIGINS = config(
    'CORS_ALLOWED_ORIGINS',
    default='http://localhost:5173,http://127.0.0.1:5173,https://atyant.in,https://www.atyant.in',
    cast=Csv(),
)
CORS_ALLOW_CREDENTIALS = True

CSRF_TRUSTED_ORIGINS = config('CSRF_TRUSTED_ORIGINS', default='https://atyant.in', cast=Csv())


TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [os.path.join(BASE_DIR, 'templates')],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# ==============================
# Channels / WebSocket / Cache
# ==============================
ASGI_APPLICATION = "atyant_backend.asgi.application"
REDIS_URL = config("REDIS_URL", default="")

if REDIS_URL:
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels_redis.core.RedisChannelLayer",
            "CONFIG": {"hosts": [REDIS_URL]},
        },
    }
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": REDIS_URL,
        }
    }
else:
    CHANNEL_LAYERS = {
        "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"},
    }
    CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"},
    }

# ==============================
# Email Settings (Resend)
# ==============================
EMAIL_BACKEND = config("EMAIL_BACKEND", default="mentorship.email_backend.ResendEmailBackend")
RESEND_API_KEY = config("RESEND_API_KEY", default="")
RESEND_API_URL = "https://api.resend.com/emails"
DEFAULT_FROM_EMAIL = config("DEFAULT_FROM_EMAIL", default="Atyant <notification@atyant.in>")
FRONTEND_URL = config("FRONTEND_URL", default="http://localhost:5173")

# ==============================
# Third-party integrations
# ==============================
GOOGLE_CLIENT_ID = config("GOOGLE_CLIENT_ID", default="")
GOOGLE_CLIENT_EMAIL = config("GOOGLE_CLIENT_EMAIL", default="")
GOOGLE_PRIVATE_KEY = config("GOOGLE_PRIVATE_KEY", default="").replace("\\n", "\n")
GOOGLE_PROJECT_ID = config("GOOGLE_PROJECT_ID", default="")
GOOGLE_SHEET_ID = config("GOOGLE_SHEET_ID", default="")

RAZORPAY_KEY_ID = config("RAZORPAY_KEY_ID", default="")
RAZORPAY_KEY_SECRET = config("RAZORPAY_KEY_SECRET", default="")
RAZORPAY_WEBHOOK_SECRET = config("RAZORPAY_WEBHOOK_SECRET", default="")
RAZORPAY_API_URL = "https://api.razorpay.com/v1"

OUTBOUND_TIMEOUT_SECONDS = config("OUTBOUND_TIMEOUT_SECONDS", default=10, cast=int)

# ==============================
# Marketplace rules
# ==============================
DEFAULT_QUESTION_CREDITS = config("DEFAULT_QUESTION_CREDITS", default=1, cast=int)
DEFAULT_MESSAGE_CREDITS = config("DEFAULT_MESSAGE_CREDITS", default=5, cast=int)
MESSAGE_CREDIT_PACK_PAISE = 500
MESSAGE_CREDITS_PER_PACK = 20
MIN_PROFILE_STRENGTH = 70
QUESTION_EDIT_WINDOW_MINUTES = 5
MAX_FOLLOW_UPS = 2
MENTOR_AUTO_REPLY_ENABLED = config("MENTOR_AUTO_REPLY_ENABLED", default=True, cast=bool)

# ==============================
# Content moderation
# ==============================
MODERATION_EXTRA_BLOCKED_TERMS = config("MODERATION_EXTRA_BLOCKED_TERMS", default="", cast=Csv())
MODERATION_MAX_LENGTH = 10000
MODERATED_PATH_PREFIXES = (
    '/api/messages/',
    '/api/community-chat/',
    '/api/questions/',
    '/api/ratings/',
)
MODERATED_FIELDS = (
    'content', 'message', 'text', 'body',
    'question_text', 'follow_up_text', 'feedback_text', 'comment',
)

# ==============================
# Logging
# ==============================
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {'format': '{asctime} {levelname} {name}: {message}', 'style': '{'},
    },
    'handlers': {
        'console': {'class': 'logging.StreamHandler', 'formatter': 'simple'},
    },
    'root': {
        'handlers': ['console'],
        'level': config('LOG_LEVEL', default='INFO'),
    },
}
