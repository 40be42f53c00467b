"""
Django management command to send rent payment reminders.

Meant to run once a day (cron). Reminders already sent for the reference
date are not repeated, so reruns with --date are safe.

Usage:
    python manage.py send_payment_reminders
    python manage.py send_payment_reminders --agency 3
    python manage.py send_payment_reminders --date 2025-01-02   # Simulate another day
"""

from datetime import date

from django.core.management.base import BaseCommand, CommandError

from agencies.models import Agency
from notifications.services import check_and_send_reminders


class Command(BaseCommand):
    help = 'Create payment reminder notifications for rents due soon or overdue'

    def add_arguments(self, parser):
        parser.add_argument('--agency', type=int, help='Only this agency ID')
        parser.add_argument('--date', type=str, help='Reference date YYYY-MM-DD (default: today)')

    def handle(self, *args, **options):
        try:
            today = date.fromisoformat(options['date']) if options['date'] else date.today()
        except ValueError:
            raise CommandError(f"Invalid date: {options['date']}")

        agencies = Agency.objects.filter(status='approved')
        if options['agency']:
            agencies = agencies.filter(pk=options['agency'])

        self.stdout.write('=' * 60)
        self.stdout.write(f"PAYMENT REMINDERS {today.isoformat()}")
        self.stdout.write('=' * 60)

        total = 0
        for agency in agencies:
            created = check_and_send_reminders(agency, today)
            total += created
            self.stdout.write(f"{agency.name:<40} {created:>5}")

        self.stdout.write('=' * 60)
        self.stdout.write(self.style.SUCCESS(f"✅ {total} reminders created"))
