"""
API Serializers for owners, tenants and properties.

This module defines the serialization layer between the agency records and
the REST API:
- List views (summary data for tables)
- Detail views (complete records with computed fields)
- Tenant assignments (who occupies which property)

Validation messages are in French since they are shown as-is to agency staff.
"""

import logging

from rest_framework import serializers

from agencies.serializers import validate_phone_number
from .models import Owner, Tenant, Property, PropertyTenantAssignment, PROPERTY_TYPE_CHOICES

logger = logging.getLogger(__name__)

PROPERTY_TYPES = {key for key, _ in PROPERTY_TYPE_CHOICES}


# =============================================================================
# SHARED VALIDATION
# =============================================================================

class PersonValidationMixin:
    """Phone and family-status rules shared by owners and tenants."""

    def validate_phone(self, value):
        if not value:
            raise serializers.ValidationError("Le numéro de téléphone est obligatoire.")
        return validate_phone_number(value)

    def validate_spouse_phone(self, value):
        return validate_phone_number(value)

    def validate(self, data):
        errors = {}

        marital_status = data.get('marital_status', getattr(self.instance, 'marital_status', None))
        spouse_name = data.get('spouse_name', getattr(self.instance, 'spouse_name', ''))
        if marital_status == 'marie' and not (spouse_name or '').strip():
            errors['spouse_name'] = "Le nom du conjoint est obligatoire pour une personne mariée."

        for field in ('first_name', 'last_name'):
            if field in data and not (data[field] or '').strip():
                errors[field] = "Ce champ ne peut pas être vide."

        if errors:
            raise serializers.ValidationError(errors)

        return data


# =============================================================================
# OWNER SERIALIZERS
# =============================================================================

class OwnerListSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(source='get_full_name', read_only=True)
    property_count = serializers.SerializerMethodField()

    class Meta:
        model = Owner
        fields = [
            'id',
            'business_id',
            'full_name',
            'first_name',
            'last_name',
            'phone',
            'email',
            'city',
            'property_title',
            'property_count',
            'created_at',
        ]
        read_only_fields = fields

    def get_property_count(self, obj):
        return obj.properties.count()


class OwnerDetailSerializer(PersonValidationMixin, serializers.ModelSerializer):
    """
    Complete owner serializer with validation of family fields.
    """

    full_name = serializers.CharField(source='get_full_name', read_only=True)
    url_slug = serializers.CharField(source='get_url_slug', read_only=True)

    class Meta:
        model = Owner
        fields = [
            'id',
            'business_id',
            'url_slug',
            'agency',
            'full_name',
            'first_name',
            'last_name',
            'phone',
            'email',
            'address',
            'city',
            'property_title',
            'property_title_details',
            'marital_status',
            'spouse_name',
            'spouse_phone',
            'children_count',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id', 'business_id', 'url_slug', 'agency', 'full_name',
            'created_by', 'created_at', 'updated_at'
        ]


# =============================================================================
# TENANT SERIALIZERS
# =============================================================================

class TenantListSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(source='get_full_name', read_only=True)

    class Meta:
        model = Tenant
        fields = [
            'id',
            'business_id',
            'full_name',
            'first_name',
            'last_name',
            'phone',
            'email',
            'profession',
            'payment_status',
            'created_at',
        ]
        read_only_fields = fields


class TenantDetailSerializer(PersonValidationMixin, serializers.ModelSerializer):
    full_name = serializers.CharField(source='get_full_name', read_only=True)
    url_slug = serializers.CharField(source='get_url_slug', read_only=True)

    class Meta:
        model = Tenant
        fields = [
            'id',
            'business_id',
            'url_slug',
            'agency',
            'full_name',
            'first_name',
            'last_name',
            'phone',
            'email',
            'address',
            'city',
            'profession',
            'nationality',
            'photo_url',
            'id_card_url',
            'registration_number',
            'payment_status',
            'marital_status',
            'spouse_name',
            'spouse_phone',
            'children_count',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id', 'business_id', 'url_slug', 'agency', 'full_name',
            'created_by', 'created_at', 'updated_at'
        ]


# =============================================================================
# PROPERTY SERIALIZERS
# =============================================================================

class PropertyListSerializer(serializers.ModelSerializer):
    """
    Summary property serializer for tables and maps.
    """

    owner_name = serializers.CharField(source='owner.get_full_name', read_only=True)
    full_address = serializers.CharField(source='get_full_address', read_only=True)
    property_type = serializers.CharField(source='get_property_type', read_only=True)
    coordinates = serializers.SerializerMethodField()

    class Meta:
        model = Property
        fields = [
            'id',
            'business_id',
            'title',
            'owner',
            'owner_name',
            'property_type',
            'standing',
            'full_address',
            'coordinates',
            'monthly_rent',
            'usage_type',
            'is_available',
            'for_rent',
            'for_sale',
            'created_at',
        ]
        read_only_fields = fields

    def get_coordinates(self, obj):
        coordinates = obj.get_coordinates()
        if coordinates is None:
            return None
        return {'lat': coordinates[0], 'lng': coordinates[1]}


class PropertyDetailSerializer(serializers.ModelSerializer):
    """
    Complete property serializer.

    Validates the JSON location/details payloads, the rent and that the
    owner belongs to the agency of the property.
    """

    owner_name = serializers.CharField(source='owner.get_full_name', read_only=True)
    full_address = serializers.CharField(source='get_full_address', read_only=True)
    has_coordinates = serializers.BooleanField(read_only=True)
    url_slug = serializers.CharField(source='get_url_slug', read_only=True)

    class Meta:
        model = Property
        fields = [
            'id',
            'business_id',
            'url_slug',
            'agency',
            'owner',
            'owner_name',
            'title',
            'description',
            'location',
            'full_address',
            'has_coordinates',
            'details',
            'standing',
            'rooms',
            'images',
            'is_available',
            'for_sale',
            'for_rent',
            'monthly_rent',
            'usage_type',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id', 'business_id', 'url_slug', 'agency', 'owner_name', 'full_address',
            'has_coordinates', 'created_by', 'created_at', 'updated_at'
        ]

    def validate_title(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Le titre du bien est obligatoire.")
        return value.strip()

    def validate_monthly_rent(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Le loyer mensuel ne peut pas être négatif.")
        return value

    def validate_location(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("La localisation doit être un objet.")
        coordinates = value.get('coordinates')
        if coordinates is not None:
            if not isinstance(coordinates, dict) or 'lat' not in coordinates or 'lng' not in coordinates:
                raise serializers.ValidationError("Les coordonnées doivent contenir lat et lng.")
        return value

    def validate_details(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Les détails doivent être un objet.")
        property_type = value.get('type')
        if property_type and property_type not in PROPERTY_TYPES:
            raise serializers.ValidationError(f"Type de bien inconnu: {property_type}")
        return value

    def validate_rooms(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Les pièces doivent être une liste.")
        return value

    def validate_images(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Les images doivent être une liste.")
        return value

    def validate(self, data):
        errors = {}

        owner = data.get('owner')
        agency = self.context.get('agency') or getattr(self.instance, 'agency', None)
        if owner is not None and agency is not None and owner.agency_id != agency.pk:
            errors['owner'] = "Le propriétaire doit appartenir à la même agence que le bien."

        for_rent = data.get('for_rent', getattr(self.instance, 'for_rent', True))
        for_sale = data.get('for_sale', getattr(self.instance, 'for_sale', False))
        if not for_rent and not for_sale:
            errors['for_rent'] = "Le bien doit être proposé à la location ou à la vente."

        if errors:
            raise serializers.ValidationError(errors)

        return data


# =============================================================================
# TENANT ASSIGNMENT SERIALIZERS
# =============================================================================

class PropertyTenantAssignmentSerializer(serializers.ModelSerializer):
    property_title = serializers.CharField(source='property.title', read_only=True)
    tenant_name = serializers.CharField(source='tenant.get_full_name', read_only=True)
    total_monthly = serializers.DecimalField(
        source='get_total_monthly', max_digits=12, decimal_places=2, read_only=True
    )

    class Meta:
        model = PropertyTenantAssignment
        fields = [
            'id',
            'agency',
            'property',
            'property_title',
            'tenant',
            'tenant_name',
            'lease_start',
            'lease_end',
            'rent_amount',
            'charges_amount',
            'total_monthly',
            'status',
            'notes',
            'created_by',
            'updated_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'agency', 'created_by', 'updated_by', 'created_at', 'updated_at']

    def validate(self, data):
        errors = {}

        def _value(key):
            if key in data:
                return data[key]
            return getattr(self.instance, key, None)

        property_obj = _value('property')
        tenant = _value('tenant')
        lease_start = _value('lease_start')
        lease_end = _value('lease_end')

        if lease_start and lease_end and lease_end <= lease_start:
            errors['lease_end'] = "La fin d'occupation doit être postérieure au début."

        agency = self.context.get('agency') or getattr(self.instance, 'agency', None)
        if agency is not None:
            for key, obj in (('property', property_obj), ('tenant', tenant)):
                if obj is not None and obj.agency_id != agency.pk:
                    errors[key] = "Cet enregistrement n'appartient pas à votre agence."

        if _value('status') == 'active' and property_obj is not None and tenant is not None:
            duplicates = PropertyTenantAssignment.objects.filter(
                property=property_obj, tenant=tenant, status='active'
            )
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                errors['tenant'] = "Ce locataire occupe déjà ce bien."

        if errors:
            raise serializers.ValidationError(errors)
        return data
