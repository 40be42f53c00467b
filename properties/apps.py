"""
Properties App Configuration - Gestion360 Backend
Django app configuration for the properties application.
"""

from django.apps import AppConfig


class PropertiesConfig(AppConfig):
    """
    Configuration for the Properties app.

    This app manages:
    - Owners and their land titles
    - Tenants and their payment record
    - Properties, their location and geocoding
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'properties'
    verbose_name = 'Owners, Tenants & Properties'

    def ready(self):
        """Register the service configuration check."""
        check_required_services()


# =============================================================================
# CUSTOM APP CHECKS
# =============================================================================

def check_required_services():
    """
    Django system check for required external services.

    Reports missing configuration (Google Maps API key, domain settings)
    as warnings so development can run without them.
    """
    from django.core.checks import Warning, register, Tags

    @register(Tags.compatibility)
    def check_services(app_configs, **kwargs):
        from services import validate_service_configuration

        _, errors = validate_service_configuration()
        return [
            Warning(
                message,
                hint='Set the value in the environment or in gestion360/settings.py.',
                obj='properties.apps.PropertiesConfig',
                id=f'properties.W{index:03d}',
            )
            for index, message in enumerate(errors, start=1)
        ]

    return check_services
