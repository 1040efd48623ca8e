"""
WSGI config for the escrow payments service.

Provided for traditional deployment options (gunicorn, mod_wsgi); the
primary entry point is config.asgi.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
