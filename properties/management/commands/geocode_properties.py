# properties/management/commands/geocode_properties.py
"""
Django management command to geocode agency properties.

Usage:
    python manage.py geocode_properties
    python manage.py geocode_properties --agency 3   # Only one agency
    python manage.py geocode_properties --force      # Re-geocode all properties
"""

from django.core.management.base import BaseCommand

from properties.models import Property
from services.geocoding import GeocodingService


class Command(BaseCommand):
    help = 'Geocode property locations and store location.coordinates'

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Re-geocode all properties, even if they already have coordinates',
        )

        parser.add_argument(
            '--id',
            type=int,
            help='Geocode a specific property by ID',
        )

        parser.add_argument(
            '--agency',
            type=int,
            help='Only geocode properties of this agency ID',
        )

        parser.add_argument(
            '--delay',
            type=float,
            default=0.2,
            help='Delay between geocoding requests in seconds (default: 0.2)',
        )

    def handle(self, *args, **options):
        force = options['force']
        property_id = options['id']
        delay = options['delay']

        queryset = Property.objects.all()
        if options['agency']:
            queryset = queryset.filter(agency_id=options['agency'])

        if property_id:
            queryset = queryset.filter(id=property_id)
            if not queryset.exists():
                self.stdout.write(self.style.ERROR(f'Property with ID {property_id} not found'))
                return

        if force:
            self.stdout.write(self.style.WARNING('Force mode: Re-geocoding ALL properties'))
            for property_obj in queryset:
                if property_obj.has_coordinates:
                    location = dict(property_obj.location)
                    location.pop('coordinates', None)
                    property_obj.location = location
                    property_obj.save(update_fields=['location', 'updated_at'])

        pending = [prop.pk for prop in queryset if not prop.has_coordinates]
        if not pending:
            self.stdout.write(self.style.SUCCESS('✓ All properties already have coordinates'))
            return

        self.stdout.write(f'Found {len(pending)} properties to geocode')
        self.stdout.write(f'Using delay of {delay} seconds between requests')
        self.stdout.write('Starting geocoding...\n')

        results = GeocodingService().batch_geocode_properties(queryset.filter(pk__in=pending), delay=delay)

        self.stdout.write('\n' + '=' * 60)
        self.stdout.write('GEOCODING COMPLETE')
        self.stdout.write('=' * 60)
        self.stdout.write(f'Total properties:     {results["total"]}')
        self.stdout.write(self.style.SUCCESS(f'✓ Successfully geocoded: {results["success"]}'))
        self.stdout.write(self.style.WARNING(f'⊘ Already had coords:   {results["skipped"]}'))

        if results['failed'] > 0:
            self.stdout.write(self.style.ERROR(f'✗ Failed:              {results["failed"]}'))
            self.stdout.write(f'\nFailed property IDs: {", ".join(map(str, results["failed_ids"]))}')

        self.stdout.write('=' * 60 + '\n')
