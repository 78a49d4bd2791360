"""
Django settings for the storefront.

Todo se configura por variables de entorno (.env). DJANGO_ENV elige
los ajustes de development o production.
"""

import os
from pathlib import Path

import environ
from django.core.exceptions import ImproperlyConfigured


os.environ.setdefault('DJANGO_ENV', 'development')

env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, []),
    CSRF_TRUSTED_ORIGINS=(list, []),
    SECRET_KEY=(str, ''),
    DATABASE_URL=(str, 'sqlite:///db.sqlite3'),
    SITE_NAME=(str, 'Store'),
    SITE_BASE_URL=(str, 'http://localhost:8000'),
    SUPPORT_EMAIL=(str, ''),
    REDIS_URL=(str, ''),
    ABANDONED_CART_API_KEY=(str, ''),
    ABANDONED_CART_KEY_PREFIX=(str, 'abandoned_cart:'),
    ABANDONED_CART_ACTIVITY_WINDOW_MINUTES=(int, 5),
    ABANDONED_CART_RESET_STALE_SEQUENCE=(bool, True),
    ABANDONED_CART_REMINDER_DELAYS_HOURS=(list, ['1', '24', '48', '72']),
    ABANDONED_CART_STORE_TIMEOUT=(float, 5.0),
    ABANDONED_CART_SCAN_BATCH_SIZE=(int, 100),
    ABANDONED_CART_RECORD_TTL_DAYS=(int, 0),
    ABANDONED_CART_REDACT_EMAILS=(bool, True),
    ABANDONED_CART_COUPON_2=(str, 'COMEBACK10'),
    ABANDONED_CART_COUPON_3=(str, 'COMEBACK15'),
    ABANDONED_CART_COUPON_4=(str, 'LASTCHANCE20'),
    EMAIL_BACKEND=(str, 'django.core.mail.backends.console.EmailBackend'),
    EMAIL_HOST=(str, 'smtp.gmail.com'),
    EMAIL_PORT=(int, 587),
    EMAIL_HOST_USER=(str, ''),
    EMAIL_HOST_PASSWORD=(str, ''),
    EMAIL_USE_TLS=(bool, True),
    EMAIL_USE_SSL=(bool, False),
    EMAIL_TIMEOUT=(int, 15),
    DEFAULT_FROM_EMAIL=(str, ''),
)

BASE_DIR = Path(__file__).resolve().parent.parent

# Read .env file (if present)
env_file = BASE_DIR / '.env'
if env_file.exists():
    environ.Env.read_env(env_file)

SECRET_KEY = env('SECRET_KEY') or 'django-insecure-CHANGE-THIS-IN-PRODUCTION-use-env'
DEBUG = env('DEBUG')
ALLOWED_HOSTS = env.list('ALLOWED_HOSTS', default=['localhost', '127.0.0.1'])
_raw_origins = env.list('CSRF_TRUSTED_ORIGINS', default=[])
# Strip whitespace; Django requires exact match (no trailing slash)
CSRF_TRUSTED_ORIGINS = [o.strip().rstrip('/') for o in _raw_origins if o.strip()]

DJANGO_APPS = [
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'django.contrib.staticfiles',
]

THIRD_PARTY_APPS = [
    'rest_framework',
]

LOCAL_APPS = [
    'apps.core',
    'apps.cart',
]

INSTALLED_APPS = DJANGO_APPS + THIRD_PARTY_APPS + LOCAL_APPS

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    'django.middleware.locale.LocaleMiddleware',
]

ROOT_URLCONF = 'config.urls'
WSGI_APPLICATION = 'config.wsgi.application'
ASGI_APPLICATION = 'config.asgi.application'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [
            BASE_DIR / 'templates',
        ],
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
            ],
            'loaders': [
                'django.template.loaders.filesystem.Loader',
                'django.template.loaders.app_directories.Loader',
            ],
        },
    },
]

DATABASES = {
    'default': env.db('DATABASE_URL')
}

LANGUAGE_CODE = 'en'
LANGUAGES = [
    ('en', 'English'),
    ('es', 'Español'),
    ('fr', 'Français'),
    ('de', 'Deutsch'),
    ('it', 'Italiano'),
    ('pt', 'Português'),
]
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'
STORAGES = {
    'staticfiles': {
        'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage',
    },
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

SITE_NAME = env('SITE_NAME')
SITE_BASE_URL = env('SITE_BASE_URL')

EMAIL_BACKEND = env('EMAIL_BACKEND')
EMAIL_HOST = env('EMAIL_HOST')
EMAIL_PORT = env.int('EMAIL_PORT')
EMAIL_HOST_USER = env('EMAIL_HOST_USER')
EMAIL_HOST_PASSWORD = env('EMAIL_HOST_PASSWORD')
EMAIL_USE_TLS = env.bool('EMAIL_USE_TLS')
EMAIL_USE_SSL = env.bool('EMAIL_USE_SSL')
EMAIL_TIMEOUT = env.int('EMAIL_TIMEOUT')
_default_from = env('DEFAULT_FROM_EMAIL') or EMAIL_HOST_USER or 'no-reply@localhost'
DEFAULT_FROM_EMAIL = _default_from
SERVER_EMAIL = _default_from
SUPPORT_EMAIL = env('SUPPORT_EMAIL') or _default_from

# Carritos abandonados
REDIS_URL = env('REDIS_URL')
ABANDONED_CART_API_KEY = env('ABANDONED_CART_API_KEY')
ABANDONED_CART_ACTIVITY_WINDOW_MINUTES = env('ABANDONED_CART_ACTIVITY_WINDOW_MINUTES')
ABANDONED_CART_RESET_STALE_SEQUENCE = env('ABANDONED_CART_RESET_STALE_SEQUENCE')
ABANDONED_CART_REMINDER_DELAYS_HOURS = [
    float(h) for h in env('ABANDONED_CART_REMINDER_DELAYS_HOURS')
]
ABANDONED_CART_REDACT_EMAILS = env('ABANDONED_CART_REDACT_EMAILS')
ABANDONED_CART_STORE = {
    'BACKEND': 'apps.cart.store.RedisCartActivityStore',
    'OPTIONS': {
        'url': REDIS_URL,
        'key_prefix': env('ABANDONED_CART_KEY_PREFIX'),
        'batch_size': env('ABANDONED_CART_SCAN_BATCH_SIZE'),
        'timeout': env('ABANDONED_CART_STORE_TIMEOUT'),
        'ttl_seconds': env('ABANDONED_CART_RECORD_TTL_DAYS') * 24 * 60 * 60,
    },
}
ABANDONED_CART_OFFERS = {
    2: {'coupon_code': env('ABANDONED_CART_COUPON_2'), 'discount_percentage': 10, 'validity_hours': 48},
    3: {'coupon_code': env('ABANDONED_CART_COUPON_3'), 'discount_percentage': 15, 'validity_hours': 24},
    4: {'coupon_code': env('ABANDONED_CART_COUPON_4'), 'discount_percentage': 20, 'validity_hours': 12},
}

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '[{asctime}] {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'stderr': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['stderr'],
        'level': 'WARNING',
    },
    'loggers': {
        'django': {
            'handlers': ['stderr'],
            'level': 'WARNING',
            'propagate': False,
        },
        'django.request': {
            'handlers': ['stderr'],
            'level': 'ERROR',
            'propagate': False,
        },
        'apps': {
            'handlers': ['stderr'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}


def _is_placeholder_secret(secret):
    if not secret:
        return True
    lowered = secret.lower()
    return lowered.startswith('django-insecure-') or len(secret) < 50


# Environment-specific overrides
_django_env = (os.environ.get('DJANGO_ENV') or 'development').strip().lower()

if _django_env == 'development':
    DEBUG = True
    ALLOWED_HOSTS = ['*']

if not DEBUG:
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = 'DENY'
    SECURE_SSL_REDIRECT = True
    SECURE_REFERRER_POLICY = 'strict-origin-when-cross-origin'
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
    SECURE_HSTS_SECONDS = 31536000
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True
    CSRF_COOKIE_HTTPONLY = True
    CSRF_COOKIE_SECURE = True

if _django_env == 'production':
    if _is_placeholder_secret(SECRET_KEY):
        raise ImproperlyConfigured(
            'SECRET_KEY insegura para producción. Define una clave robusta en .env.'
        )

    if not ALLOWED_HOSTS:
        raise ImproperlyConfigured(
            'ALLOWED_HOSTS vacío en producción. Define al menos un dominio real.'
        )

    if not REDIS_URL.strip():
        raise ImproperlyConfigured(
            'REDIS_URL vacío en producción. Los carritos abandonados necesitan Redis.'
        )

    if not SITE_BASE_URL.startswith('https://'):
        raise ImproperlyConfigured(
            'SITE_BASE_URL debe ser https en producción (enlaces de los correos).'
        )
