"""
Properties App Configuration - Brokerage Backend
Django app configuration for the properties application.
"""

from django.apps import AppConfig


class PropertiesConfig(AppConfig):
    """
    Configuration for the Properties app.

    This app manages:
    - Property listings and their display ordering
    - Neighborhoods and their landing pages
    - Public and back-office catalogue endpoints
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'properties'
    verbose_name = 'Properties & Neighborhoods'
