"""
Collaboration App Configuration - Gestion360 Backend
"""

from django.apps import AppConfig


class CollaborationConfig(AppConfig):
    """
    Configuration for the Collaboration app.

    This app manages:
    - Announcements of properties to rent or sell, visible to every agency
    - Interests expressed by other agencies and their review
    - Messages between users of any agency
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'collaboration'
    verbose_name = 'Collaboration'
