"""
Django management command to switch off announcements past their expiry date.

Usage:
    python manage.py expire_announcements
"""

from django.core.management.base import BaseCommand

from collaboration.services import deactivate_expired_announcements


class Command(BaseCommand):
    help = 'Deactivate announcements whose expiry date has passed'

    def handle(self, *args, **options):
        updated = deactivate_expired_announcements()
        self.stdout.write(self.style.SUCCESS(f"✅ {updated} announcements deactivated"))
