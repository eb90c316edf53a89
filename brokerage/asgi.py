"""
ASGI config for the brokerage project.

It exposes the ASGI callable as a module-level variable named ``application``.
"""

import os

from django.core.asgi import get_asgi_application

# Set the default settings module for the 'brokerage' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'brokerage.settings')

application = get_asgi_application()
