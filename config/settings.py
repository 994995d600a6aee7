from pathlib import Path

from decouple import Csv, config

# -------------------------------
# Diretórios base
# -------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# -------------------------------
# Segurança e debug
# -------------------------------
SECRET_KEY = config('SECRET_KEY', default='insecure-dev-key')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='', cast=Csv())

# -------------------------------
# Redis / change feed de vendas
# -------------------------------
REDIS_URL            = config('REDIS_URL', default='redis://localhost:6379/0')
CHANGE_FEED_BACKEND  = config('CHANGE_FEED_BACKEND', default='memory')  # memory | redis
SALES_CHANGE_CHANNEL = config('SALES_CHANGE_CHANNEL', default='sales.changes')

# -------------------------------
# Notificações para proprietários
# -------------------------------
OWNER_NOTIFIER      = config('OWNER_NOTIFIER', default='database')  # database | webhook
OWNER_WEBHOOK_URL   = config('OWNER_WEBHOOK_URL', default='')
OWNER_WEBHOOK_TOKEN = config('OWNER_WEBHOOK_TOKEN', default='')

# -------------------------------
# Vendas
# -------------------------------
CONFIRMATION_LOAD_LIMIT = config('CONFIRMATION_LOAD_LIMIT', default=1000, cast=int)
DEFAULT_PAGE_SIZE       = config('DEFAULT_PAGE_SIZE', default=20, cast=int)
PHONE_DEFAULT_REGION    = config('PHONE_DEFAULT_REGION', default='DZ')

# Colunas de ator em bancos antigos: auto | true | false
SCHEMA_AUDIT_USER_COLUMNS       = config('SCHEMA_AUDIT_USER_COLUMNS', default='auto')
SCHEMA_APPOINTMENT_USER_COLUMNS = config('SCHEMA_APPOINTMENT_USER_COLUMNS', default='auto')

# -------------------------------
# Apps
# -------------------------------
INSTALLED_APPS = [
    'django.contrib.contenttypes',
    'plugins.django_interface.apps.DjangoInterfaceConfig',
]

MIDDLEWARE: list[str] = []

# -------------------------------
# Banco de Dados
# -------------------------------
DB_ENGINE = config('DB_ENGINE', default='django.db.backends.sqlite3')
if DB_ENGINE.endswith('sqlite3'):
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME':   config('DB_NAME', default=str(BASE_DIR / 'land_sales.sqlite3')),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE':   DB_ENGINE,
            'NAME':     config('DB_NAME'),
            'USER':     config('DB_USER'),
            'PASSWORD': config('DB_PASS'),
            'HOST':     config('DB_HOST'),
            'PORT':     config('DB_PORT'),
        }
    }

# -------------------------------
# Internacionalização
# -------------------------------
LANGUAGE_CODE = 'pt-br'
TIME_ZONE     = config('TIME_ZONE', default='Africa/Algiers')
USE_I18N      = True
USE_TZ        = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
