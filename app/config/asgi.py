"""
ASGI config for the escrow payments service.

Uvicorn serves the application through this entry point. The service is
plain HTTP, so the Django ASGI handler is exposed directly.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_asgi_application()
