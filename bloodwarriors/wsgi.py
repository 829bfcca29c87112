"""
WSGI entrypoint for HTTP-only deployments (gunicorn, uWSGI).

The donor notification socket needs the ASGI application in
``bloodwarriors.asgi``.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "bloodwarriors.settings")

application = get_wsgi_application()
