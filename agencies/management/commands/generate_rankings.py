"""
Django management command to compute the yearly agency rankings.

Usage:
    python manage.py generate_rankings
    python manage.py generate_rankings --year 2025
    python manage.py generate_rankings --seed-settings   # Also create default platform settings
"""

from django.core.management.base import BaseCommand
from django.utils import timezone

from agencies.services import generate_agency_rankings, seed_default_platform_settings
from agencies.models import PlatformSetting
from services.business_logic import format_currency_xof


class Command(BaseCommand):
    help = 'Compute and store the agency rankings for a year'

    def add_arguments(self, parser):
        parser.add_argument(
            '--year',
            type=int,
            default=None,
            help='Ranking year (default: current year)',
        )
        parser.add_argument(
            '--seed-settings',
            action='store_true',
            help='Create missing default platform settings first',
        )

    def handle(self, *args, **options):
        year = options['year'] or timezone.now().year

        if options['seed_settings']:
            created = seed_default_platform_settings()
            self.stdout.write(f"Created {created} default platform settings")

        if not PlatformSetting.get_value('auto_generate_rankings', True) and options['year'] is None:
            self.stdout.write(self.style.WARNING("Automatic ranking generation is disabled (auto_generate_rankings)"))
            return

        self.stdout.write('=' * 60)
        self.stdout.write(f"AGENCY RANKINGS {year}")
        self.stdout.write('=' * 60)

        rankings = generate_agency_rankings(year)

        if not rankings:
            self.stdout.write(self.style.WARNING("No approved agency to rank"))
            return

        for ranking in rankings:
            rewards = ', '.join(
                format_currency_xof(reward['amount']) if reward['type'] == 'cash'
                else reward.get('label') or f"-{reward.get('percentage')}%"
                for reward in ranking.rewards
            )
            self.stdout.write(
                f"#{ranking.rank:<3} {ranking.agency.name:<40} {ranking.total_score:>6}"
                + (f"  [{rewards}]" if rewards else '')
            )

        self.stdout.write('=' * 60)
        self.stdout.write(self.style.SUCCESS(f"✅ {len(rankings)} agencies ranked for {year}"))
