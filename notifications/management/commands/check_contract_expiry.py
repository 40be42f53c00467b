"""
Django management command to warn agencies about contracts ending soon.

Usage:
    python manage.py check_contract_expiry
    python manage.py check_contract_expiry --days 60
"""

from django.core.management.base import BaseCommand

from agencies.models import Agency
from notifications.services import check_contract_expiry


class Command(BaseCommand):
    help = 'Create notifications for active contracts ending within N days'

    def add_arguments(self, parser):
        parser.add_argument(
            '--days',
            type=int,
            default=None,
            help='Warning window in days (default: GESTION360 CONTRACT_EXPIRY_WARNING_DAYS)',
        )

    def handle(self, *args, **options):
        total = 0
        for agency in Agency.objects.filter(status='approved'):
            total += check_contract_expiry(agency, days=options['days'])

        self.stdout.write(self.style.SUCCESS(f"✅ {total} contract expiry notifications created"))
