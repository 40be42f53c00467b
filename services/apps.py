"""
Django application configuration for the services app.

The services app holds the business rules shared by the agency apps:
formatting, identifiers, reference codes and the geocoding client.
"""

from django.apps import AppConfig


class ServicesConfig(AppConfig):
    """
    Application configuration for the services app.

    The app has no models; it is installed so its tests are discovered.
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'services'
    verbose_name = 'Services'
