"""
ASGI config for the ITAM project.

Serves the JSON API and the admin over HTTP.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "itam.settings")

application = get_asgi_application()
