"""
CRM App Configuration - Brokerage Backend
"""

from django.apps import AppConfig


class CrmConfig(AppConfig):
    """
    Configuration for the CRM app.

    This app manages:
    - Clients, their properties of interest and contact history
    - Property owners and their properties
    - Financial transactions
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'crm'
    verbose_name = 'Clients, Owners & Financials'
