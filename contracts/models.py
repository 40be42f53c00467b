"""
Contracts models for the Gestion360 application.

- Contract: a lease (location), sale (vente) or management mandate (gestion)
  between the agency, an owner and optionally a tenant
- ContractTemplate: an HTML document template, either platform-wide
  (agency is null) or owned by one agency
- ContractVersion: numbered copy of each generated contract document
- Inventory: entry or exit inspection (état des lieux) of a property
"""

import logging
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from agencies.models import Agency
from properties.models import BusinessRecord, Owner, Property, Tenant, USAGE_TYPE_CHOICES
from services.business_logic import clamp_day, to_decimal

logger = logging.getLogger(__name__)


# =============================================================================
# CHOICES
# =============================================================================

CONTRACT_TYPE_CHOICES = [
    ('location', 'Location'),
    ('vente', 'Vente'),
    ('gestion', 'Gestion'),
]

CONTRACT_STATUS_CHOICES = [
    ('draft', 'Brouillon'),
    ('active', 'Actif'),
    ('expired', 'Expiré'),
    ('terminated', 'Résilié'),
    ('renewed', 'Renouvelé'),
]

TEMPLATE_TYPE_CHOICES = [
    ('gestion', 'Contrat de gestion'),
    ('bail_habitation', 'Bail habitation'),
    ('bail_professionnel', 'Bail professionnel'),
]

# A change to any of these recomputes Contract.commission_amount
COMMISSION_INPUT_FIELDS = ('contract_type', 'monthly_rent', 'sale_price', 'commission_rate')


def _comparable(value):
    if value is None or isinstance(value, str):
        return value
    return to_decimal(value)


# =============================================================================
# CONTRACT MODEL
# =============================================================================

class Contract(BusinessRecord):
    """
    Contract between the agency, an owner and (except for gestion) a tenant.

    commission_rate is a percentage (10 = 10%). documents holds the rendered
    contract documents, newest last.
    """

    BUSINESS_ID_TYPE = 'CONT'

    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='contracts')
    property = models.ForeignKey(Property, on_delete=models.PROTECT, related_name='contracts')
    owner = models.ForeignKey(Owner, on_delete=models.PROTECT, related_name='contracts')
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.PROTECT,
        related_name='contracts',
        null=True,
        blank=True,
        help_text="Empty for management mandates"
    )

    contract_type = models.CharField(max_length=20, choices=CONTRACT_TYPE_CHOICES, db_index=True)
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)

    monthly_rent = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True,
                                       validators=[MinValueValidator(0)])
    sale_price = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True,
                                     validators=[MinValueValidator(0)])
    deposit = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True,
                                  validators=[MinValueValidator(0)])
    charges = models.DecimalField(max_digits=12, decimal_places=2, default=0,
                                  validators=[MinValueValidator(0)])
    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=10,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text="Agency commission in percent"
    )
    commission_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    status = models.CharField(max_length=20, choices=CONTRACT_STATUS_CHOICES, default='draft', db_index=True)
    terms = models.TextField(blank=True, default='')
    documents = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = 'contracts'
        ordering = ['-start_date', '-created_at']
        verbose_name = 'Contract'
        verbose_name_plural = 'Contracts'

        indexes = [
            models.Index(fields=['agency', 'status']),
            models.Index(fields=['agency', 'contract_type']),
        ]

    def __str__(self):
        return f"{self.get_contract_type_display()} - {self.property}"

    def save(self, *args, **kwargs):
        if self.owner_id is None and self.property_id is not None:
            self.owner_id = self.property.owner_id

        if self.commission_amount is None or (
            self._commission_inputs_changed() and not self._commission_amount_edited()
        ):
            previous = self.commission_amount
            self.commission_amount = self.compute_commission_amount()
            update_fields = kwargs.get('update_fields')
            if update_fields is not None and self.commission_amount != previous:
                kwargs['update_fields'] = set(update_fields) | {'commission_amount'}

        super().save(*args, **kwargs)
        self.keep_commission_amount = False
        self._remember_commission_inputs()

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_commission_inputs = {
            name: value for name, value in zip(field_names, values)
            if name in COMMISSION_INPUT_FIELDS + ('commission_amount',) and value is not models.DEFERRED
        }
        return instance

    def _remember_commission_inputs(self):
        deferred = self.get_deferred_fields()
        self._loaded_commission_inputs = {
            name: getattr(self, name) for name in COMMISSION_INPUT_FIELDS + ('commission_amount',)
            if name not in deferred
        }

    def _loaded_value_differs(self, name):
        loaded = getattr(self, '_loaded_commission_inputs', None) or {}
        if name not in loaded:
            return False
        return _comparable(loaded[name]) != _comparable(getattr(self, name))

    def _commission_inputs_changed(self):
        return any(self._loaded_value_differs(name) for name in COMMISSION_INPUT_FIELDS)

    def _commission_amount_edited(self):
        return getattr(self, 'keep_commission_amount', False) or self._loaded_value_differs('commission_amount')

    def compute_commission_amount(self):
        """commission_rate percent of the rent (of the price for a sale), or None without a base."""
        base = self.monthly_rent if self.contract_type != 'vente' else self.sale_price
        if base is None:
            return None
        return (to_decimal(base) * to_decimal(self.commission_rate) / Decimal('100')).quantize(Decimal('0.01'))

    def get_template_type(self):
        """
        Document template key for this contract, or None when no template
        applies (sales).
        """
        if self.contract_type == 'gestion':
            return 'gestion'
        if self.contract_type == 'location':
            if self.property.usage_type == 'professionnel':
                return 'bail_professionnel'
            return 'bail_habitation'
        return None

    def get_due_date(self, year, month):
        """Rent due date for a month: the start day, clamped to the month."""
        return clamp_day(year, month, self.start_date.day)

    def covers_month(self, year, month):
        """Whether the contract runs during any day of year/month."""
        month_start = clamp_day(year, month, 1)
        month_end = clamp_day(year, month, 31)
        if self.start_date > month_end:
            return False
        return self.end_date is None or self.end_date >= month_start


# =============================================================================
# CONTRACT TEMPLATE MODEL
# =============================================================================

class ContractTemplate(models.Model):
    """
    HTML document template for contract generation.

    Platform-wide templates have no agency; agency templates take
    precedence over them during selection.
    """

    agency = models.ForeignKey(
        Agency,
        on_delete=models.CASCADE,
        related_name='contract_templates',
        null=True,
        blank=True,
        help_text="Empty for platform-wide templates"
    )
    contract_type = models.CharField(max_length=30, choices=TEMPLATE_TYPE_CHOICES, db_index=True)
    usage_type = models.CharField(max_length=20, choices=USAGE_TYPE_CHOICES, null=True, blank=True)
    name = models.CharField(max_length=255)
    language = models.CharField(max_length=10, default='fr')
    version = models.PositiveIntegerField(default=1)
    body = models.TextField(blank=True, default='')
    variables = models.JSONField(default=list, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'contract_templates'
        ordering = ['contract_type', '-version', '-created_at']
        verbose_name = 'Contract Template'
        verbose_name_plural = 'Contract Templates'

    def __str__(self):
        scope = self.agency.name if self.agency_id else 'Plateforme'
        return f"{self.name} v{self.version} ({scope})"

    @property
    def is_platform_wide(self):
        return self.agency_id is None


# =============================================================================
# CONTRACT VERSIONS
# =============================================================================

class ContractVersion(models.Model):
    """Rendered contract document, numbered per contract and never edited."""

    contract = models.ForeignKey(Contract, on_delete=models.CASCADE, related_name='versions')
    version_number = models.PositiveIntegerField()
    body = models.TextField()
    metadata = models.JSONField(default=dict, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'contract_versions'
        ordering = ['contract', '-version_number']
        constraints = [
            models.UniqueConstraint(fields=['contract', 'version_number'], name='unique_contract_version')
        ]

    def __str__(self):
        return f"{self.contract} v{self.version_number}"


# =============================================================================
# INVENTORIES (ETATS DES LIEUX)
# =============================================================================

INVENTORY_TYPE_CHOICES = [
    ('entry', "Etat des lieux d'entrée"),
    ('exit', 'Etat des lieux de sortie'),
]

INVENTORY_STATUS_CHOICES = [
    ('draft', 'Brouillon'),
    ('completed', 'Terminé'),
    ('signed', 'Signé'),
]

# Best first; an element moving right between entry and exit is a degradation
INVENTORY_CONDITIONS = ('neuf', 'bon', 'usage', 'mauvais')


class Inventory(models.Model):
    """
    Entry or exit inspection of a property.

    rooms: [{"name": "Salon", "elements": [{"name": "Murs", "condition": "bon", "notes": ""}]}]
    meter_readings: {"electricity": {"index": 1520}, "water": {"index": 87}}
    """

    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='inventories')
    property = models.ForeignKey(Property, on_delete=models.CASCADE, related_name='inventories')
    contract = models.ForeignKey(
        Contract,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='inventories'
    )
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='inventories'
    )

    type = models.CharField(max_length=10, choices=INVENTORY_TYPE_CHOICES, default='entry', db_index=True)
    status = models.CharField(max_length=10, choices=INVENTORY_STATUS_CHOICES, default='draft', db_index=True)
    date = models.DateField()
    rooms = models.JSONField(default=list, blank=True)
    meter_readings = models.JSONField(default=dict, blank=True)
    keys_count = models.PositiveIntegerField(null=True, blank=True)
    observations = models.TextField(blank=True, default='')
    signed_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'inventories'
        ordering = ['-date', '-created_at']
        verbose_name = 'Inventory'
        verbose_name_plural = 'Inventories'

    def __str__(self):
        return f"{self.get_type_display()} - {self.property} ({self.date})"

    def get_element_conditions(self):
        """{(room name, element name): condition} for every element."""
        conditions = {}
        for room in self.rooms or []:
            for element in room.get('elements') or []:
                conditions[(room.get('name'), element.get('name'))] = element.get('condition')
        return conditions
