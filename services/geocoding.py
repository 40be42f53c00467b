# services/geocoding.py
"""
Google Maps Geocoding Service for the Gestion360 Backend
Converts property locations (address line, quartier, commune) to lat/lng
coordinates stored in Property.location['coordinates'].
"""

import logging
import time
from typing import Optional, Tuple

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class GeocodingService:
    """
    Service for geocoding addresses using Google Maps Geocoding API.
    Handles rate limiting, error handling, and coordinate extraction.
    """

    base_url = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key if api_key is not None else getattr(settings, 'GOOGLE_MAPS_API_KEY', '')
        if not self.api_key:
            logger.warning("GOOGLE_MAPS_API_KEY not set in environment variables")

        self.country = settings.GESTION360.get('DEFAULT_COUNTRY', "Côte d'Ivoire")
        self.rate_limit_delay = 0.2  # 200ms between requests (5 per second max)

    def geocode_address(self, address: str) -> Optional[Tuple[float, float]]:
        """
        Geocode a single address and return (latitude, longitude).

        The default country is appended when the address does not name it.

        Args:
            address: Address string (e.g., "Rue des Jardins, Deux Plateaux, Cocody")

        Returns:
            Tuple of (latitude, longitude) or None if geocoding fails
        """
        if not self.api_key:
            logger.error("Cannot geocode: GOOGLE_MAPS_API_KEY not configured")
            return None

        if not address or not address.strip():
            logger.warning("Cannot geocode: Empty address provided")
            return None

        if self.country.lower() not in address.lower():
            address = f"{address}, {self.country}"

        try:
            response = requests.get(
                self.base_url,
                params={'address': address, 'key': self.api_key},
                timeout=10
            )
            response.raise_for_status()
            data = response.json()

            if data['status'] == 'OK' and len(data['results']) > 0:
                location = data['results'][0]['geometry']['location']
                lat = float(location['lat'])
                lng = float(location['lng'])

                logger.info(f"Successfully geocoded: {address} -> ({lat}, {lng})")
                return (lat, lng)

            elif data['status'] == 'ZERO_RESULTS':
                logger.warning(f"No results found for address: {address}")
                return None

            elif data['status'] == 'OVER_QUERY_LIMIT':
                logger.error("Google Maps API query limit exceeded")
                return None

            else:
                logger.warning(f"Geocoding failed with status: {data['status']} for address: {address}")
                return None

        except requests.RequestException as e:
            logger.error(f"Network error during geocoding: {str(e)}")
            return None

        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Error parsing geocoding response: {str(e)}")
            return None

    def geocode_property(self, property_obj) -> bool:
        """
        Geocode a Property instance and store its coordinates.

        Args:
            property_obj: Property model instance

        Returns:
            True if the property has coordinates afterwards, False otherwise
        """
        if property_obj.has_coordinates:
            logger.info(f"Skipping already geocoded property: {property_obj.title}")
            return True

        address = property_obj.get_geocoding_address()
        if not address:
            logger.warning(f"Cannot geocode {property_obj.title}: No location information")
            return False

        coordinates = self.geocode_address(address)
        if not coordinates:
            return False

        latitude, longitude = coordinates
        location = dict(property_obj.location or {})
        location['coordinates'] = {'lat': latitude, 'lng': longitude}
        property_obj.location = location
        property_obj.save(update_fields=['location', 'updated_at'])

        logger.info(f"Updated coordinates for {property_obj.title}")
        return True

    def batch_geocode_properties(self, queryset, delay: float = None) -> dict:
        """
        Geocode multiple properties with rate limiting.

        Returns:
            Dictionary with success/failure counts and details
        """
        if delay is None:
            delay = self.rate_limit_delay

        results = {
            'total': queryset.count(),
            'success': 0,
            'skipped': 0,
            'failed': 0,
            'failed_ids': []
        }

        logger.info(f"Starting batch geocoding of {results['total']} properties")

        for property_obj in queryset:
            if property_obj.has_coordinates:
                results['skipped'] += 1
                continue

            if self.geocode_property(property_obj):
                results['success'] += 1
            else:
                results['failed'] += 1
                results['failed_ids'].append(property_obj.id)

            if delay > 0:
                time.sleep(delay)

        logger.info(
            f"Batch geocoding complete: {results['success']} success, "
            f"{results['skipped']} skipped, {results['failed']} failed"
        )

        return results


def geocode_address(address: str) -> Optional[Tuple[float, float]]:
    """Geocode with a service built from the current settings."""
    return GeocodingService().geocode_address(address)
