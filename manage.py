#!/usr/bin/env python
"""
Django's command-line utility for administrative tasks.

Gestion360 Immo Backend Management Script
=========================================

Usage Examples:
===============

Development:
  python manage.py runserver                    # Start development server
  python manage.py migrate                      # Apply migrations
  python manage.py createsuperuser              # Create admin user
  python manage.py test                         # Run tests

Gestion360 Specific Commands:
  python manage.py seed_contract_templates      # Load default OHADA contract templates
  python manage.py send_payment_reminders       # Rent reminders for every agency
  python manage.py check_contract_expiry        # Warn agencies about ending contracts
  python manage.py send_pending_emails          # Flush the e-mail notification queue
  python manage.py generate_rankings --year N   # Compute the yearly agency ranking
  python manage.py geocode_properties           # Fill missing property coordinates
"""

import os
import sys


def main():
    """Run administrative tasks."""

    # Set the default Django settings module
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'gestion360.settings')

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        error_msg = (
            "Couldn't import Django. This usually means:\n"
            "  1. Django is not installed - run: pip install -e .\n"
            "  2. Virtual environment is not activated\n"
            "  3. You're in the wrong directory\n\n"
            f"Current Python path: {sys.executable}\n"
            f"Current working directory: {os.getcwd()}\n"
            f"DJANGO_SETTINGS_MODULE: {os.environ.get('DJANGO_SETTINGS_MODULE', 'Not set')}\n"
        )
        raise ImportError(error_msg) from exc

    try:
        # Execute the command line arguments
        execute_from_command_line(sys.argv)
    except Exception as exc:
        # Catch any other runtime errors and provide helpful context
        print(f"\nError executing Django command: {exc}", file=sys.stderr)
        print(f"Command attempted: {' '.join(sys.argv)}", file=sys.stderr)
        raise


if __name__ == '__main__':
    main()
