"""
WSGI config for the brokerage project.

It exposes the WSGI callable as a module-level variable named ``application``.
This is the production entry point (gunicorn brokerage.wsgi).
"""

import os

from django.core.wsgi import get_wsgi_application

# Set the default settings module for the 'brokerage' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'brokerage.settings')

application = get_wsgi_application()
