"""
API Serializers for the agencies app.

List serializers carry summary data for console tables; detail serializers
carry the full record with computed fields.
"""

import logging
import re

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import (
    PERMISSION_KEYS,
    Agency,
    AgencyRanking,
    AgencyRegistrationRequest,
    AgencySubscription,
    AgencyUser,
    PlatformSetting,
    SubscriptionPayment,
)

logger = logging.getLogger(__name__)

User = get_user_model()

PHONE_DIGITS_PATTERN = re.compile(r'\D')


def validate_phone_number(value):
    """Phone numbers must contain between 8 and 15 digits."""
    if not value:
        return value
    digits = PHONE_DIGITS_PATTERN.sub('', value)
    if not 8 <= len(digits) <= 15:
        raise serializers.ValidationError("Le numéro de téléphone doit contenir entre 8 et 15 chiffres.")
    return value


# =============================================================================
# AGENCY SERIALIZERS
# =============================================================================

class AgencyListSerializer(serializers.ModelSerializer):
    subscription_status = serializers.SerializerMethodField()

    class Meta:
        model = Agency
        fields = [
            'id',
            'business_id',
            'name',
            'commercial_register',
            'city',
            'phone',
            'email',
            'status',
            'subscription_status',
            'created_at',
        ]
        read_only_fields = fields

    def get_subscription_status(self, obj):
        # Reverse one-to-one raises RelatedObjectDoesNotExist (an AttributeError)
        subscription = getattr(obj, 'subscription', None)
        return subscription.status if subscription else None


class AgencyDetailSerializer(serializers.ModelSerializer):
    """
    Complete agency serializer.

    Used for the agency profile screen and the platform console.
    """

    full_address = serializers.CharField(source='get_full_address', read_only=True)
    representative_name = serializers.CharField(source='get_representative_name', read_only=True)
    director_name = serializers.SerializerMethodField()

    class Meta:
        model = Agency
        fields = [
            'id',
            'business_id',
            'name',
            'commercial_register',
            'logo_url',
            'is_accredited',
            'accreditation_number',
            'address',
            'city',
            'full_address',
            'phone',
            'email',
            'director',
            'director_name',
            'legal_representative',
            'representative_name',
            'status',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id', 'business_id', 'full_address', 'director_name',
            'representative_name', 'created_at', 'updated_at'
        ]

    def get_director_name(self, obj):
        if not obj.director_id:
            return None
        return obj.director.get_full_name() or obj.director.get_username()

    def validate_name(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Le nom de l'agence est obligatoire.")
        return value.strip()

    def validate_phone(self, value):
        return validate_phone_number(value)


# =============================================================================
# AGENCY USERS
# =============================================================================

class AgencyUserSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = AgencyUser
        fields = [
            'id',
            'user',
            'username',
            'email',
            'full_name',
            'agency',
            'role',
            'permissions',
            'is_active',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'agency', 'username', 'email', 'full_name', 'created_at', 'updated_at']

    def get_full_name(self, obj):
        return obj.user.get_full_name()

    def validate_permissions(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Les permissions doivent être un objet.")
        unknown = sorted(set(value) - set(PERMISSION_KEYS))
        if unknown:
            raise serializers.ValidationError(f"Permissions inconnues: {', '.join(unknown)}")
        return {key: bool(flag) for key, flag in value.items()}


class PlatformAdminUserSerializer(serializers.ModelSerializer):
    """Minimal user payload returned by /agencies/me/."""

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'first_name', 'last_name']


# =============================================================================
# REGISTRATION REQUESTS
# =============================================================================

class AgencyRegistrationRequestSerializer(serializers.ModelSerializer):
    """
    Public registration form.

    Processing fields are read-only; they change only through approve/reject.
    """

    class Meta:
        model = AgencyRegistrationRequest
        fields = [
            'id',
            'agency_name',
            'commercial_register',
            'logo_url',
            'is_accredited',
            'accreditation_number',
            'address',
            'city',
            'phone',
            'director_first_name',
            'director_last_name',
            'director_email',
            'director_phone',
            'director_auth_user',
            'status',
            'admin_notes',
            'processed_by',
            'processed_at',
            'created_at',
        ]
        read_only_fields = ['id', 'status', 'admin_notes', 'processed_by', 'processed_at', 'created_at']

    def validate_phone(self, value):
        return validate_phone_number(value)

    def validate_director_phone(self, value):
        return validate_phone_number(value)

    def validate(self, data):
        errors = {}

        if data.get('is_accredited') and not data.get('accreditation_number'):
            errors['accreditation_number'] = "Le numéro d'agrément est obligatoire pour une agence agréée."

        register = data.get('commercial_register')
        if register and Agency.objects.filter(commercial_register=register).exists():
            errors['commercial_register'] = "Une agence avec ce registre de commerce existe déjà."

        if errors:
            raise serializers.ValidationError(errors)

        return data


class RegistrationDecisionSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================

class SubscriptionPaymentSerializer(serializers.ModelSerializer):
    agency_name = serializers.CharField(source='subscription.agency.name', read_only=True)

    class Meta:
        model = SubscriptionPayment
        fields = [
            'id',
            'subscription',
            'agency_name',
            'amount',
            'payment_date',
            'payment_method',
            'reference_number',
            'status',
            'processed_by',
            'notes',
            'created_at',
        ]
        read_only_fields = ['id', 'agency_name', 'processed_by', 'created_at']


class AgencySubscriptionSerializer(serializers.ModelSerializer):
    agency_name = serializers.CharField(source='agency.name', read_only=True)
    is_overdue = serializers.SerializerMethodField()

    class Meta:
        model = AgencySubscription
        fields = [
            'id',
            'agency',
            'agency_name',
            'plan_type',
            'status',
            'monthly_fee',
            'start_date',
            'end_date',
            'next_payment_date',
            'last_payment_date',
            'trial_days_remaining',
            'suspension_reason',
            'payment_history',
            'is_overdue',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'agency_name', 'payment_history', 'is_overdue', 'created_at', 'updated_at']

    def get_is_overdue(self, obj):
        return obj.is_overdue()


class ExtendSubscriptionSerializer(serializers.Serializer):
    months = serializers.IntegerField(min_value=1, max_value=36)


class SuspendSubscriptionSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


# =============================================================================
# RANKINGS AND SETTINGS
# =============================================================================

class AgencyRankingSerializer(serializers.ModelSerializer):
    agency_name = serializers.CharField(source='agency.name', read_only=True)

    class Meta:
        model = AgencyRanking
        fields = [
            'id',
            'agency',
            'agency_name',
            'year',
            'rank',
            'total_score',
            'volume_score',
            'recovery_rate_score',
            'satisfaction_score',
            'metrics',
            'rewards',
            'created_at',
        ]
        read_only_fields = fields


class GenerateRankingsSerializer(serializers.Serializer):
    year = serializers.IntegerField(min_value=2000, max_value=2100, required=False)


class PlatformSettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlatformSetting
        fields = [
            'id',
            'setting_key',
            'setting_value',
            'description',
            'category',
            'is_public',
            'updated_by',
            'updated_at',
        ]
        read_only_fields = ['id', 'updated_by', 'updated_at']
