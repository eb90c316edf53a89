"""
Content App Configuration - Brokerage Backend
"""

from django.apps import AppConfig


class ContentConfig(AppConfig):
    """
    Configuration for the Content app.

    Banners, about sections, site settings and contact form messages.
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'content'
    verbose_name = 'Site Content'
