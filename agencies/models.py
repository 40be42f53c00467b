"""
Agency models for the Gestion360 platform.

This module implements the tenancy root and the platform console entities:
- Agency: a real-estate agency, owner of every business record
- AgencyUser / PlatformAdmin: who may act for an agency or for the platform
- AgencyRegistrationRequest: public sign-up awaiting platform approval
- AgencySubscription / SubscriptionPayment: agency billing
- AgencyRanking: yearly performance ranking
- PlatformSetting: key/value platform configuration
"""

import logging
from datetime import date

from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone

from services.business_logic import PAYMENT_METHOD_CHOICES

logger = logging.getLogger(__name__)


# =============================================================================
# PERMISSIONS
# =============================================================================

PERMISSION_KEYS = [
    'dashboard',
    'properties',
    'owners',
    'tenants',
    'contracts',
    'collaboration',
    'reports',
    'notifications',
    'settings',
    'userManagement',
]


def default_user_permissions():
    """Permissions granted to a new agency user."""
    return {key: key in ('dashboard', 'notifications') for key in PERMISSION_KEYS}


def director_permissions():
    return {key: True for key in PERMISSION_KEYS}


def default_subscription_fee():
    return settings.GESTION360['SUBSCRIPTION_MONTHLY_FEE']


def default_trial_days():
    return settings.GESTION360['SUBSCRIPTION_TRIAL_DAYS']


# =============================================================================
# AGENCY MODEL
# =============================================================================

class Agency(models.Model):
    """
    Represents a real-estate agency.

    Every owner, tenant, property, contract and receipt belongs to exactly
    one agency; API querysets are filtered on it.
    """

    STATUS_CHOICES = [
        ('pending', 'En attente'),
        ('approved', 'Approuvée'),
        ('rejected', 'Rejetée'),
        ('suspended', 'Suspendue'),
    ]

    # Identification
    name = models.CharField(max_length=255)
    commercial_register = models.CharField(
        max_length=100,
        unique=True,
        help_text="RCCM number - unique per agency"
    )
    business_id = models.CharField(
        max_length=20,
        unique=True,
        blank=True,
        null=True,
        help_text="AGEN-YYMMDD-NNNNN identifier"
    )

    # Branding
    logo_url = models.URLField(max_length=500, blank=True, default='')

    # Accreditation
    is_accredited = models.BooleanField(default=False)
    accreditation_number = models.CharField(max_length=100, blank=True, default='')

    # Contact
    address = models.CharField(max_length=255, blank=True, default='')
    city = models.CharField(max_length=100, blank=True, default='')
    phone = models.CharField(max_length=30, blank=True, default='')
    email = models.EmailField(blank=True, default='')

    # Representation
    director = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='directed_agencies'
    )
    legal_representative = models.CharField(
        max_length=255,
        blank=True,
        default='',
        help_text="Name printed as the agency representative on contracts"
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='approved', db_index=True)

    # Metadata
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'agencies'
        ordering = ['name']
        verbose_name = 'Agency'
        verbose_name_plural = 'Agencies'

    def __str__(self):
        return self.name

    def __repr__(self):
        return f"<Agency: {self.name}>"

    def save(self, *args, **kwargs):
        if not self.business_id:
            from services import safe_next_business_id
            self.business_id = safe_next_business_id(Agency, 'AGEN')
        super().save(*args, **kwargs)

    def get_full_address(self):
        """Street address, or the city when no address is recorded."""
        return self.address or self.city or ''

    def get_representative_name(self):
        """Legal representative, falling back to the director's name."""
        if self.legal_representative:
            return self.legal_representative
        if self.director_id:
            return self.director.get_full_name() or self.director.get_username()
        return ''

    def get_active_users(self):
        return self.members.filter(is_active=True).select_related('user')


# =============================================================================
# USERS AND ROLES
# =============================================================================

class AgencyUser(models.Model):
    """
    Membership of a Django user in an agency, with role and screen permissions.
    """

    ROLE_CHOICES = [
        ('director', 'Directeur'),
        ('manager', 'Gestionnaire'),
        ('agent', 'Agent'),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='agency_memberships'
    )
    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='members')
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='agent')
    permissions = models.JSONField(default=default_user_permissions, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'agency_users'
        ordering = ['agency', 'role']
        constraints = [
            models.UniqueConstraint(fields=['user', 'agency'], name='unique_user_per_agency')
        ]

    def __str__(self):
        return f"{self.user.get_username()} ({self.get_role_display()}) @ {self.agency.name}"

    def save(self, *args, **kwargs):
        if self.role == 'director':
            self.permissions = director_permissions()
        else:
            # Fill keys added after the membership was created
            merged = default_user_permissions()
            merged.update(self.permissions or {})
            self.permissions = merged
        super().save(*args, **kwargs)

    def has_permission(self, key):
        return bool((self.permissions or {}).get(key))


class PlatformAdmin(models.Model):
    """Platform console operator."""

    ROLE_CHOICES = [
        ('super_admin', 'Super administrateur'),
        ('admin', 'Administrateur'),
    ]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='platform_admin'
    )
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default='admin')
    permissions = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)
    last_login_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'platform_admins'

    def __str__(self):
        return f"{self.user.get_username()} ({self.get_role_display()})"


def get_user_agency_membership(user):
    """Return the active AgencyUser of `user`, or None."""
    if user is None or not user.is_authenticated:
        return None
    return (
        AgencyUser.objects.filter(user=user, is_active=True)
        .select_related('agency')
        .order_by('created_at')
        .first()
    )


def is_platform_admin(user):
    if user is None or not user.is_authenticated:
        return False
    return PlatformAdmin.objects.filter(user=user, is_active=True).exists()


# =============================================================================
# REGISTRATION REQUESTS
# =============================================================================

class AgencyRegistrationRequest(models.Model):
    """
    Agency sign-up submitted from the public form.

    A platform admin approves it, which creates (or updates) the Agency
    and makes the requesting user its director.
    """

    STATUS_CHOICES = [
        ('pending', 'En attente'),
        ('approved', 'Approuvée'),
        ('rejected', 'Rejetée'),
    ]

    # Agency information
    agency_name = models.CharField(max_length=255)
    commercial_register = models.CharField(max_length=100)
    logo_url = models.URLField(max_length=500, blank=True, default='')
    is_accredited = models.BooleanField(default=False)
    accreditation_number = models.CharField(max_length=100, blank=True, default='')
    address = models.CharField(max_length=255, blank=True, default='')
    city = models.CharField(max_length=100, blank=True, default='')
    phone = models.CharField(max_length=30, blank=True, default='')

    # Director information
    director_first_name = models.CharField(max_length=100)
    director_last_name = models.CharField(max_length=100)
    director_email = models.EmailField()
    director_phone = models.CharField(max_length=30, blank=True, default='')
    director_auth_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='agency_registration_requests',
        help_text="Account that will become the agency director"
    )

    # Processing
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    admin_notes = models.TextField(blank=True, default='')
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='processed_registration_requests'
    )
    processed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'agency_registration_requests'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.agency_name} ({self.get_status_display()})"

    @property
    def is_pending(self):
        return self.status == 'pending'

    def mark_as_approved(self, admin_user):
        self.status = 'approved'
        self.processed_by = admin_user
        self.processed_at = timezone.now()
        self.save(update_fields=['status', 'processed_by', 'processed_at', 'updated_at'])

    def mark_as_rejected(self, admin_user, notes=''):
        self.status = 'rejected'
        self.processed_by = admin_user
        self.processed_at = timezone.now()
        if notes:
            self.admin_notes = notes
        self.save(update_fields=['status', 'processed_by', 'processed_at', 'admin_notes', 'updated_at'])


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================

class AgencySubscription(models.Model):
    """
    Billing state of an agency on the platform.

    payment_history is an append-only list of {date, amount, months} entries
    written by extensions.
    """

    PLAN_CHOICES = [
        ('basic', 'Basic'),
        ('premium', 'Premium'),
        ('enterprise', 'Enterprise'),
    ]

    STATUS_CHOICES = [
        ('trial', 'Essai'),
        ('active', 'Actif'),
        ('suspended', 'Suspendu'),
        ('cancelled', 'Annulé'),
    ]

    agency = models.OneToOneField(Agency, on_delete=models.CASCADE, related_name='subscription')
    plan_type = models.CharField(max_length=20, choices=PLAN_CHOICES, default='basic')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='trial', db_index=True)
    monthly_fee = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=default_subscription_fee,
        validators=[MinValueValidator(0)]
    )
    start_date = models.DateField(default=date.today)
    end_date = models.DateField(null=True, blank=True)
    next_payment_date = models.DateField(null=True, blank=True)
    last_payment_date = models.DateField(null=True, blank=True)
    trial_days_remaining = models.IntegerField(default=default_trial_days, validators=[MinValueValidator(0)])
    suspension_reason = models.TextField(blank=True, default='')
    payment_history = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'agency_subscriptions'
        ordering = ['agency__name']

    def __str__(self):
        return f"{self.agency.name} - {self.get_plan_type_display()} ({self.get_status_display()})"

    @property
    def is_active(self):
        return self.status in ('trial', 'active')

    def is_overdue(self, today=None):
        today = today or date.today()
        return bool(self.next_payment_date and self.next_payment_date < today)


class SubscriptionPayment(models.Model):
    """A payment received for an agency subscription."""

    STATUS_CHOICES = [
        ('pending', 'En attente'),
        ('completed', 'Complété'),
        ('failed', 'Échoué'),
        ('refunded', 'Remboursé'),
    ]

    subscription = models.ForeignKey(
        AgencySubscription,
        on_delete=models.CASCADE,
        related_name='payments'
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    payment_date = models.DateField(default=date.today)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='virement')
    reference_number = models.CharField(max_length=100, blank=True, default='')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='completed')
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='processed_subscription_payments'
    )
    notes = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'subscription_payments'
        ordering = ['-payment_date', '-created_at']

    def __str__(self):
        return f"{self.subscription.agency.name} - {self.amount} ({self.payment_date})"


# =============================================================================
# RANKINGS
# =============================================================================

class AgencyRanking(models.Model):
    """Yearly performance ranking of an agency (scores on 100)."""

    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='rankings')
    year = models.IntegerField(validators=[MinValueValidator(2000), MaxValueValidator(2100)])
    rank = models.IntegerField(validators=[MinValueValidator(1)])
    total_score = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    volume_score = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    recovery_rate_score = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    satisfaction_score = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    metrics = models.JSONField(default=dict, blank=True)
    rewards = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'agency_rankings'
        ordering = ['-year', 'rank']
        constraints = [
            models.UniqueConstraint(fields=['agency', 'year'], name='unique_ranking_per_year')
        ]

    def __str__(self):
        return f"{self.year} #{self.rank} {self.agency.name}"


# =============================================================================
# PLATFORM SETTINGS
# =============================================================================

class PlatformSetting(models.Model):
    """Key/value configuration edited from the platform console."""

    CATEGORY_CHOICES = [
        ('subscription', 'Abonnement'),
        ('ranking', 'Classement'),
        ('platform', 'Plateforme'),
    ]

    setting_key = models.CharField(max_length=100, unique=True)
    setting_value = models.JSONField(default=None, null=True, blank=True)
    description = models.TextField(blank=True, default='')
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default='platform')
    is_public = models.BooleanField(default=False)
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
        db_table = 'platform_settings'
        ordering = ['category', 'setting_key']

    def __str__(self):
        return f"{self.setting_key} = {self.setting_value!r}"

    @classmethod
    def get_value(cls, key, default=None):
        """Return a setting value, or `default` when the key is absent."""
        value = cls.objects.filter(setting_key=key).values_list('setting_value', flat=True).first()
        return default if value is None else value
