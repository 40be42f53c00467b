"""
Django management command to deliver queued e-mails.

Usage:
    python manage.py send_pending_emails
    python manage.py send_pending_emails --limit 20
"""

from django.core.management.base import BaseCommand

from notifications.services import send_pending_emails


class Command(BaseCommand):
    help = 'Send pending EmailNotification rows'

    def add_arguments(self, parser):
        parser.add_argument('--limit', type=int, default=100, help='Maximum e-mails to send (default: 100)')

    def handle(self, *args, **options):
        results = send_pending_emails(limit=options['limit'])

        self.stdout.write(self.style.SUCCESS(f"✓ Sent:   {results['sent']}"))
        if results['failed']:
            self.stdout.write(self.style.ERROR(f"✗ Failed: {results['failed']}"))
