"""
WSGI config for the stockroom project.

It exposes the WSGI callable as a module-level variable named ``application``.
Static files are served by WhiteNoise middleware (see settings.MIDDLEWARE).
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'stockroom.settings')

application = get_wsgi_application()
