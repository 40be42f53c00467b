"""
Agencies App Configuration - Gestion360 Backend
"""

from django.apps import AppConfig


class AgenciesConfig(AppConfig):
    """
    Configuration for the Agencies app.

    This app manages:
    - Agencies, their members and platform admins
    - Registration requests and subscriptions
    - Yearly rankings and platform settings
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'agencies'
    verbose_name = 'Agencies & Platform'
