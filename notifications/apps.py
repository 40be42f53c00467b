"""
Notifications App Configuration - Gestion360 Backend
"""

from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    """
    Configuration for the Notifications app.

    This app manages:
    - In-app notifications and the e-mail queue
    - Payment reminders and contract expiry warnings
    - The audit log, fed by model signals
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'notifications'
    verbose_name = 'Notifications & Audit'

    def ready(self):
        from . import signals  # noqa: F401
