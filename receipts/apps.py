"""
Receipts App Configuration - Gestion360 Backend
"""

from django.apps import AppConfig


class ReceiptsConfig(AppConfig):
    """
    Configuration for the Receipts app.

    This app manages:
    - Rent receipts and their numbering
    - Owner and tenant transactions
    - Owner reversals and account statements
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'receipts'
    verbose_name = 'Receipts & Statements'
