"""
Intelligence App Configuration - Brokerage Backend
"""

from django.apps import AppConfig


class IntelligenceConfig(AppConfig):
    """
    Configuration for the intelligence app.

    This app manages:
    - Assistant chat and confirmed action execution
    - In-memory conversation contexts and pending actions
    - Audit log of assistant actions
    - Rate limiting of the assistant endpoints
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'intelligence'
    verbose_name = 'Intelligence Assistant'
