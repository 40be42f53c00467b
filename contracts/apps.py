"""
Contracts App Configuration - Gestion360 Backend
"""

from django.apps import AppConfig


class ContractsConfig(AppConfig):
    """
    Configuration for the Contracts app.

    This app manages:
    - Leases, sales and management mandates
    - Contract templates and document generation
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'contracts'
    verbose_name = 'Contracts'
