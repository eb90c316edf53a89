"""
Django application configuration for the services app.

The services app holds business logic shared by the other apps: slug and
ordering rules, dashboard analytics and document uploads.
"""

from django.apps import AppConfig


class ServicesConfig(AppConfig):
    """Application configuration for the services app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'services'
    verbose_name = 'Services'
