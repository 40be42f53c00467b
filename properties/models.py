"""
Properties models for the Gestion360 application.

This module implements the core records managed by an agency:
- Owner: a property owner (propriétaire)
- Tenant: a tenant (locataire)
- Property: a property (bien immobilier) with its location and details
- PropertyTenantAssignment: which tenant occupies which property, and at what rent

Every record belongs to one agency and carries a business identifier
(PROP-/LOC-/BIEN-YYMMDD-NNNNN) allocated on first save.
"""

import logging

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from agencies.models import Agency
from services.business_logic import generate_url_slug

logger = logging.getLogger(__name__)


# =============================================================================
# CHOICES
# =============================================================================

PROPERTY_TITLE_CHOICES = [
    ('attestation_villageoise', 'Attestation villageoise'),
    ('lettre_attribution', "Lettre d'attribution"),
    ('permis_habiter', "Permis d'habiter"),
    ('acd', 'ACD'),
    ('tf', 'Titre foncier'),
    ('cpf', 'CPF'),
    ('autres', 'Autres'),
]

MARITAL_STATUS_CHOICES = [
    ('celibataire', 'Célibataire'),
    ('marie', 'Marié(e)'),
    ('divorce', 'Divorcé(e)'),
    ('veuf', 'Veuf/Veuve'),
]

PAYMENT_STATUS_CHOICES = [
    ('bon', 'Bon payeur'),
    ('irregulier', 'Irrégulier'),
    ('mauvais', 'Mauvais payeur'),
]

PROPERTY_TYPE_CHOICES = [
    ('villa', 'Villa'),
    ('appartement', 'Appartement'),
    ('terrain_nu', 'Terrain nu'),
    ('immeuble', 'Immeuble'),
    ('autres', 'Autres'),
]

STANDING_CHOICES = [
    ('economique', 'Économique'),
    ('moyen', 'Moyen standing'),
    ('haut', 'Haut standing'),
]

USAGE_TYPE_CHOICES = [
    ('habitation', 'Habitation'),
    ('professionnel', 'Professionnel'),
]


# =============================================================================
# SHARED BASE MODELS
# =============================================================================

class BusinessRecord(models.Model):
    """
    Agency-owned record with a business identifier.

    Subclasses set BUSINESS_ID_TYPE to one of services.business_logic.BUSINESS_ID_TYPES.
    """

    BUSINESS_ID_TYPE = None

    business_id = models.CharField(
        max_length=20,
        unique=True,
        blank=True,
        null=True,
        help_text="TYPE-YYMMDD-NNNNN identifier, allocated on first save"
    )
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
        abstract = True

    def save(self, *args, **kwargs):
        if not self.business_id and self.BUSINESS_ID_TYPE:
            from services import safe_next_business_id
            self.business_id = safe_next_business_id(type(self), self.BUSINESS_ID_TYPE)
        super().save(*args, **kwargs)

    def get_url_slug(self):
        if not self.business_id:
            return None
        return generate_url_slug(self.business_id, str(self))


class PersonRecord(BusinessRecord):
    """Identity and family fields shared by owners and tenants."""

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    phone = models.CharField(max_length=30)
    email = models.EmailField(blank=True, default='')
    address = models.CharField(max_length=255, blank=True, default='')
    city = models.CharField(max_length=100, blank=True, default='')

    marital_status = models.CharField(max_length=20, choices=MARITAL_STATUS_CHOICES, default='celibataire')
    spouse_name = models.CharField(
        max_length=200,
        blank=True,
        default='',
        help_text="Required when marital status is 'marie'"
    )
    spouse_phone = models.CharField(max_length=30, blank=True, default='')
    children_count = models.PositiveIntegerField(default=0)

    class Meta:
        abstract = True

    def __str__(self):
        return self.get_full_name()

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


# =============================================================================
# OWNER MODEL
# =============================================================================

class Owner(PersonRecord):
    """
    Property owner (propriétaire) managed by an agency.
    """

    BUSINESS_ID_TYPE = 'PROP'

    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='owners')

    property_title = models.CharField(
        max_length=30,
        choices=PROPERTY_TITLE_CHOICES,
        default='autres',
        help_text="Type of land title held by the owner"
    )
    property_title_details = models.JSONField(
        default=dict,
        blank=True,
        help_text="Title reference numbers and issuing details"
    )

    class Meta:
        db_table = 'owners'
        ordering = ['last_name', 'first_name']
        verbose_name = 'Owner'
        verbose_name_plural = 'Owners'

        indexes = [
            models.Index(fields=['agency', 'last_name']),
            models.Index(fields=['agency', 'created_at']),
        ]

    def __repr__(self):
        return f"<Owner: {self.get_full_name()}>"


# =============================================================================
# TENANT MODEL
# =============================================================================

class Tenant(PersonRecord):
    """
    Tenant (locataire) managed by an agency.

    payment_status is the agency's assessment of the tenant as a payer and
    feeds the satisfaction score of the agency ranking.
    """

    BUSINESS_ID_TYPE = 'LOC'

    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='tenants')

    profession = models.CharField(max_length=150, blank=True, default='')
    nationality = models.CharField(max_length=100, blank=True, default='')
    photo_url = models.URLField(max_length=500, blank=True, default='')
    id_card_url = models.URLField(max_length=500, blank=True, default='')
    registration_number = models.CharField(
        max_length=100,
        blank=True,
        default='',
        help_text="Identity document or tenant registration number"
    )
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='bon', db_index=True)

    class Meta:
        db_table = 'tenants'
        ordering = ['last_name', 'first_name']
        verbose_name = 'Tenant'
        verbose_name_plural = 'Tenants'

        indexes = [
            models.Index(fields=['agency', 'last_name']),
            models.Index(fields=['agency', 'created_at']),
        ]

    def __repr__(self):
        return f"<Tenant: {self.get_full_name()}>"


# =============================================================================
# PROPERTY MODEL
# =============================================================================

class Property(BusinessRecord):
    """
    Property (bien immobilier) managed by an agency on behalf of an owner.

    location JSON keys: commune, quartier, address_line, lots,
    coordinates {lat, lng}, facilites.
    details JSON keys: type (villa/appartement/terrain_nu/immeuble/autres), ...
    """

    BUSINESS_ID_TYPE = 'BIEN'

    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='properties')
    owner = models.ForeignKey(Owner, on_delete=models.PROTECT, related_name='properties')

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default='')
    location = models.JSONField(default=dict, blank=True)
    details = models.JSONField(default=dict, blank=True)
    standing = models.CharField(max_length=20, choices=STANDING_CHOICES, default='moyen')
    rooms = models.JSONField(default=list, blank=True, help_text="List of room descriptions")
    images = models.JSONField(default=list, blank=True, help_text="List of image URLs")

    is_available = models.BooleanField(default=True, db_index=True)
    for_sale = models.BooleanField(default=False)
    for_rent = models.BooleanField(default=True)
    monthly_rent = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
        help_text="Monthly rent in F CFA"
    )
    usage_type = models.CharField(max_length=20, choices=USAGE_TYPE_CHOICES, null=True, blank=True)

    class Meta:
        db_table = 'properties'
        ordering = ['-created_at']
        verbose_name = 'Property'
        verbose_name_plural = 'Properties'

        indexes = [
            models.Index(fields=['agency', 'is_available']),
            models.Index(fields=['agency', 'created_at']),
        ]

    def __str__(self):
        return self.title

    def __repr__(self):
        return f"<Property: {self.title}>"

    def get_full_address(self):
        """
        Returns "{address_line} {commune}" stripped.

        Returns:
            str: Address line and commune, or empty string if neither is set
        """
        location = self.location or {}
        return f"{location.get('address_line') or ''} {location.get('commune') or ''}".strip()

    def get_property_type(self):
        return (self.details or {}).get('type') or ''

    @property
    def has_coordinates(self):
        """Check if property has been geocoded."""
        coordinates = (self.location or {}).get('coordinates') or {}
        return coordinates.get('lat') is not None and coordinates.get('lng') is not None

    def get_coordinates(self):
        if not self.has_coordinates:
            return None
        coordinates = self.location['coordinates']
        return float(coordinates['lat']), float(coordinates['lng'])

    def get_geocoding_address(self):
        """Address line, quartier and commune, comma-separated."""
        location = self.location or {}
        parts = [location.get('address_line'), location.get('quartier'), location.get('commune')]
        return ", ".join(str(part).strip() for part in parts if part and str(part).strip())


# =============================================================================
# TENANT ASSIGNMENTS
# =============================================================================

class PropertyTenantAssignment(models.Model):
    """
    Occupation of a property by a tenant, with the agreed rent and charges.

    Lighter than a contract: it records who lives where and for how much,
    whether or not a lease document exists.
    """

    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('terminated', 'Terminée'),
    ]

    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='tenant_assignments')
    property = models.ForeignKey(Property, on_delete=models.CASCADE, related_name='tenant_assignments')
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='assignments')

    lease_start = models.DateField()
    lease_end = models.DateField(null=True, blank=True)
    rent_amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    charges_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True,
                                         validators=[MinValueValidator(0)])
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active', db_index=True)
    notes = models.TextField(blank=True, default='')

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'property_tenant_assignments'
        ordering = ['-lease_start']

    def __str__(self):
        return f"{self.tenant} → {self.property} ({self.get_status_display()})"

    def get_total_monthly(self):
        return self.rent_amount + (self.charges_amount or 0)
