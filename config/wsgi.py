"""WSGI do painel de multas (gunicorn config.wsgi:application)."""
import os
from pathlib import Path

from django.core.wsgi import get_wsgi_application

from config.env import load_dotenv_if_exists

load_dotenv_if_exists(Path(__file__).resolve().parent.parent)
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
