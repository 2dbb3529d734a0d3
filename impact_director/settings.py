import os
from pathlib import Path
from dotenv import load_dotenv
import dj_database_url

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(os.path.join(BASE_DIR, '.env'))

SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
DEBUG = os.getenv('DEBUG', 'True') == 'True'
ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'rest_framework.authtoken',
    'corsheaders',
    'drf_spectacular',
    'story_video',
]

MIDDLEWARE = [
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'impact_director.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
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

WSGI_APPLICATION = 'impact_director.wsgi.application'

DB_CONN_MAX_AGE = int(os.getenv('DB_CONN_MAX_AGE', '600'))
DB_SSL_REQUIRE = os.getenv('DB_SSL_REQUIRE', 'False') == 'True'
RUN_TASK_INLINE = os.getenv('RUN_TASK_INLINE', 'False') == 'True'
PGHOST = os.getenv('PGHOST')
PGPORT = os.getenv('PGPORT', '5432')
PGUSER = os.getenv('PGUSER')
PGPASSWORD = os.getenv('PGPASSWORD')
PGDATABASE = os.getenv('PGDATABASE')

if PGHOST and PGUSER and PGPASSWORD and PGDATABASE:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.postgresql',
            'NAME': PGDATABASE,
            'USER': PGUSER,
            'PASSWORD': PGPASSWORD,
            'HOST': PGHOST,
            'PORT': PGPORT,
            'CONN_MAX_AGE': DB_CONN_MAX_AGE,
            'OPTIONS': {
                'sslmode': 'require' if DB_SSL_REQUIRE else 'prefer'
            }
        }
    }
else:
    DATABASES = {
        'default': dj_database_url.parse(
            os.getenv('DATABASE_URL', f'sqlite:///{BASE_DIR / "db.sqlite3"}'),
            conn_max_age=DB_CONN_MAX_AGE,
            ssl_require=DB_SSL_REQUIRE,
        )
    }

AUTH_PASSWORD_VALIDATORS = []

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'
MEDIA_ROOT = Path(os.getenv('MEDIA_ROOT', BASE_DIR / 'media'))
MERGED_VIDEO_DIR = MEDIA_ROOT / 'merged-videos'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Anonymous students may submit scripts; jobs are linked to a user when one is logged in.
REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.SessionAuthentication',
        'rest_framework.authentication.TokenAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'DEFAULT_PAGINATION_CLASS': 'rest_framework.pagination.PageNumberPagination',
    'PAGE_SIZE': 20,
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
}

VIDEO_PROVIDER = os.getenv('VIDEO_PROVIDER', 'luma')

LUMA_API_KEY = os.getenv('LUMA_API_KEY')
LUMA_API_BASE = os.getenv('LUMA_API_BASE', 'https://api.lumalabs.ai/dream-machine/v1')
LUMA_MODEL = os.getenv('LUMA_MODEL', 'ray-flash-2')
LUMA_RESOLUTION = os.getenv('LUMA_RESOLUTION', '540p')

RUNWAY_API_KEY = os.getenv('RUNWAY_API_KEY') or os.getenv('RUNWAYML_API_SECRET')
RUNWAY_API_BASE = os.getenv('RUNWAY_API_BASE', 'https://api.dev.runwayml.com/v1')
RUNWAY_API_VERSION = os.getenv('RUNWAY_API_VERSION', '2024-11-06')
RUNWAY_MODEL = os.getenv('RUNWAY_MODEL', 'gen3a_turbo')

VIDEO_ASPECT_RATIO = os.getenv('VIDEO_ASPECT_RATIO', '16:9')
CLIP_DURATION_SECONDS = int(os.getenv('CLIP_DURATION_SECONDS', '9'))
MAX_SCENES = int(os.getenv('MAX_SCENES', '7'))
TARGET_DURATION_SECONDS = int(os.getenv('TARGET_DURATION_SECONDS', '60'))
MIN_SCRIPT_LENGTH = int(os.getenv('MIN_SCRIPT_LENGTH', '60'))
POLL_INTERVAL_SECONDS = float(os.getenv('POLL_INTERVAL_SECONDS', '5'))
POLL_MAX_ATTEMPTS = int(os.getenv('POLL_MAX_ATTEMPTS', '60'))
PROBE_TIMEOUT_SECONDS = float(os.getenv('PROBE_TIMEOUT_SECONDS', '30'))
COST_PER_CLIP = float(os.getenv('COST_PER_CLIP', '0.25'))
MAX_BUDGET = float(os.getenv('MAX_BUDGET', '2.00'))

GCP_SERVICE_ACCOUNT_FILE = os.getenv('GCP_SERVICE_ACCOUNT_FILE')
GCS_BUCKET = os.getenv('GCS_BUCKET')

CELERY_BROKER_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
CELERY_RESULT_BACKEND = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
CELERY_ACCEPT_CONTENT = ['json']
CELERY_TASK_SERIALIZER = 'json'
CELERY_RESULT_SERIALIZER = 'json'
CELERY_TIMEZONE = 'UTC'

CORS_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:8080",
]

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'simple': {'format': '%(asctime)s %(levelname)s [%(name)s] %(message)s'},
    },
    'handlers': {
        'console': {'class': 'logging.StreamHandler', 'formatter': 'simple'},
    },
    'root': {'handlers': ['console'], 'level': 'INFO'},
    'loggers': {
        'story_video': {'handlers': ['console'], 'level': os.getenv('LOG_LEVEL', 'INFO'), 'propagate': False},
    },
}

SPECTACULAR_SETTINGS = {
    'TITLE': 'Impact Director API',
    'DESCRIPTION': 'Turns student scripts into short animated videos by chaining Luma or Runway clips and merging them.',
    'VERSION': '1.0.0',
    'SERVERS': [{'url': 'http://127.0.0.1:8000', 'description': 'Local'}],
    'COMPONENT_SPLIT_REQUEST': True,
    'SERVE_INCLUDE_SCHEMA': False,
    'TAGS': [
        {'name': 'Video Generation', 'description': 'Submit scripts for continuous video generation'},
        {'name': 'Jobs', 'description': 'Job status, listing and cancellation'},
        {'name': 'System', 'description': 'Health and media'},
    ],
    'SWAGGER_UI_SETTINGS': {
        'deepLinking': True,
        'persistAuthorization': True,
        'displayOperationId': True,
        'filter': True,
        'tagsSorter': 'alpha',
        'operationsSorter': 'alpha',
        'docExpansion': 'none',
    },
}
