"""
Receipts models for the Gestion360 application.

- RentReceipt: quittance de loyer, one per contract and period
- FinancialTransaction: income or expense booked for an owner or a tenant
- FinancialStatement: a stored statement (relevé) for a period
"""

import logging

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from agencies.models import Agency
from contracts.models import Contract
from properties.models import Owner, Property, Tenant
from services.business_logic import PAYMENT_METHOD_CHOICES, get_month_name

logger = logging.getLogger(__name__)


ENTITY_TYPE_CHOICES = [
    ('owner', 'Propriétaire'),
    ('tenant', 'Locataire'),
]

TRANSACTION_TYPE_CHOICES = [
    ('income', 'Entrée'),
    ('expense', 'Dépense'),
]

TRANSACTION_CATEGORY_CHOICES = [
    ('loyer', 'Loyer'),
    ('caution', 'Caution'),
    ('commission', 'Commission'),
    ('reparation', 'Réparation'),
    ('charge', 'Charge'),
    ('autre', 'Autre'),
]

OWNER_FEE_CATEGORIES = ('reparation', 'charge', 'autre')


# =============================================================================
# RENT RECEIPT MODEL
# =============================================================================

class RentReceipt(models.Model):
    """
    Rent receipt issued to a tenant for one month of a lease.

    commission_amount goes to the agency, owner_payment to the owner;
    both are computed from total_amount and the contract commission rate.
    """

    receipt_number = models.CharField(max_length=30, help_text="REC-YYYYMM-NNNN, unique within the agency")

    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='receipts')
    contract = models.ForeignKey(Contract, on_delete=models.PROTECT, related_name='receipts')
    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name='receipts', null=True, blank=True)
    property = models.ForeignKey(Property, on_delete=models.PROTECT, related_name='receipts')
    owner = models.ForeignKey(Owner, on_delete=models.PROTECT, related_name='receipts')

    period_month = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(12)])
    period_year = models.PositiveIntegerField()

    rent_amount = models.DecimalField(max_digits=12, decimal_places=2)
    charges = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    commission_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    owner_payment = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    payment_date = models.DateField(db_index=True)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='especes')
    notes = models.TextField(blank=True, default='')

    issued_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='issued_receipts'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'rent_receipts'
        ordering = ['-period_year', '-period_month', '-created_at']
        verbose_name = 'Rent Receipt'
        verbose_name_plural = 'Rent Receipts'
        constraints = [
            models.UniqueConstraint(
                fields=['contract', 'period_month', 'period_year'],
                name='unique_receipt_per_contract_period'
            ),
            models.UniqueConstraint(
                fields=['agency', 'receipt_number'],
                name='unique_receipt_number_per_agency'
            ),
        ]
        indexes = [
            models.Index(fields=['agency', 'period_year', 'period_month']),
            models.Index(fields=['owner', 'payment_date']),
        ]

    def __str__(self):
        return f"{self.receipt_number} - {self.get_period_label()}"

    def get_period_label(self):
        """Example: "Janvier 2025" """
        return f"{get_month_name(self.period_month)} {self.period_year}"


# =============================================================================
# FINANCIAL TRANSACTION MODEL
# =============================================================================

class FinancialTransaction(models.Model):
    """Income or expense booked against an owner or a tenant."""

    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='transactions')
    entity_type = models.CharField(max_length=10, choices=ENTITY_TYPE_CHOICES)
    owner = models.ForeignKey(Owner, on_delete=models.CASCADE, related_name='transactions', null=True, blank=True)
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='transactions', null=True, blank=True)
    property = models.ForeignKey(Property, on_delete=models.SET_NULL, related_name='transactions',
                                 null=True, blank=True)

    type = models.CharField(max_length=10, choices=TRANSACTION_TYPE_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    description = models.CharField(max_length=255)
    category = models.CharField(max_length=20, choices=TRANSACTION_CATEGORY_CHOICES, default='autre')
    date = models.DateField(db_index=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'financial_transactions'
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f"{self.get_type_display()} {self.amount} - {self.description}"


# =============================================================================
# FINANCIAL STATEMENT MODEL
# =============================================================================

class FinancialStatement(models.Model):
    """
    Statement of an owner or tenant account over a period.

    summary keys: total_income, total_expenses, balance, pending_payments.
    transactions is the JSON list of lines the statement was built from.
    """

    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='statements')
    entity_type = models.CharField(max_length=10, choices=ENTITY_TYPE_CHOICES)
    owner = models.ForeignKey(Owner, on_delete=models.CASCADE, related_name='statements', null=True, blank=True)
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='statements', null=True, blank=True)

    period_start = models.DateField()
    period_end = models.DateField()
    summary = models.JSONField(default=dict)
    transactions = models.JSONField(default=list, blank=True)

    generated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    generated_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'financial_statements'
        ordering = ['-generated_at']

    def __str__(self):
        entity = self.owner if self.entity_type == 'owner' else self.tenant
        return f"Relevé {entity} {self.period_start} - {self.period_end}"
