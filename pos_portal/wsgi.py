"""WSGI config for pos_portal project."""

import os

from django.core.wsgi import get_wsgi_application

from pos_portal.load_env import load_env_file

load_env_file()
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "pos_portal.settings")

application = get_wsgi_application()
