"""
API Serializers for contracts, contract templates, generated versions and
inventories.
"""

import logging

from rest_framework import serializers

from services import safe_reference_code

from .models import INVENTORY_CONDITIONS, Contract, ContractTemplate, ContractVersion, Inventory

logger = logging.getLogger(__name__)


# =============================================================================
# CONTRACT SERIALIZERS
# =============================================================================

class ContractListSerializer(serializers.ModelSerializer):
    property_title = serializers.CharField(source='property.title', read_only=True)
    owner_name = serializers.CharField(source='owner.get_full_name', read_only=True)
    tenant_name = serializers.SerializerMethodField()

    class Meta:
        model = Contract
        fields = [
            'id',
            'business_id',
            'contract_type',
            'status',
            'property',
            'property_title',
            'owner',
            'owner_name',
            'tenant',
            'tenant_name',
            'start_date',
            'end_date',
            'monthly_rent',
            'sale_price',
            'created_at',
        ]
        read_only_fields = fields

    def get_tenant_name(self, obj):
        return obj.tenant.get_full_name() if obj.tenant_id else None


class ContractDetailSerializer(serializers.ModelSerializer):
    """
    Complete contract serializer.

    The owner defaults to the owner of the property. Property, owner and
    tenant must all belong to the contract's agency.
    """

    property_title = serializers.CharField(source='property.title', read_only=True)
    owner_name = serializers.CharField(source='owner.get_full_name', read_only=True)
    template_type = serializers.CharField(source='get_template_type', read_only=True)
    document_count = serializers.SerializerMethodField()
    reference_code = serializers.SerializerMethodField()

    class Meta:
        model = Contract
        fields = [
            'id',
            'business_id',
            'reference_code',
            'agency',
            'contract_type',
            'template_type',
            'status',
            'property',
            'property_title',
            'owner',
            'owner_name',
            'tenant',
            'start_date',
            'end_date',
            'monthly_rent',
            'sale_price',
            'deposit',
            'charges',
            'commission_rate',
            'commission_amount',
            'terms',
            'documents',
            'document_count',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = [
            'id', 'business_id', 'agency', 'template_type', 'status', 'property_title', 'owner_name',
            'documents', 'document_count', 'reference_code', 'created_by', 'created_at', 'updated_at'
        ]
        extra_kwargs = {
            'owner': {'required': False},
        }

    def get_document_count(self, obj):
        return len(obj.documents or [])

    def get_reference_code(self, obj):
        return safe_reference_code(obj)

    def validate(self, data):
        errors = {}

        def _value(key):
            if key in data:
                return data[key]
            return getattr(self.instance, key, None)

        contract_type = _value('contract_type')
        start_date = _value('start_date')
        end_date = _value('end_date')
        property_obj = _value('property')
        owner = _value('owner')
        tenant = _value('tenant')

        if start_date and end_date and end_date <= start_date:
            errors['end_date'] = "La date de fin doit être postérieure à la date de début."

        if contract_type == 'location':
            if tenant is None:
                errors['tenant'] = "Un locataire est obligatoire pour un contrat de location."
            if _value('monthly_rent') is None:
                errors['monthly_rent'] = "Le loyer mensuel est obligatoire pour un contrat de location."
        elif contract_type == 'vente' and _value('sale_price') is None:
            errors['sale_price'] = "Le prix de vente est obligatoire pour un contrat de vente."

        agency = self.context.get('agency') or getattr(self.instance, 'agency', None)
        if agency is not None:
            for key, obj in (('property', property_obj), ('owner', owner), ('tenant', tenant)):
                if obj is not None and obj.agency_id != agency.pk:
                    errors[key] = "Cet enregistrement n'appartient pas à votre agence."

        if property_obj is not None and owner is not None and property_obj.owner_id != owner.pk:
            errors['owner'] = "Le propriétaire doit être celui du bien."

        if errors:
            raise serializers.ValidationError(errors)

        if property_obj is not None and owner is None:
            data['owner'] = property_obj.owner

        return data

    def update(self, instance, validated_data):
        # An amount sent by the client is kept even when the rent or rate changes
        if validated_data.get('commission_amount') is not None:
            instance.keep_commission_amount = True
        return super().update(instance, validated_data)


class FinancialTermsSerializer(serializers.Serializer):
    monthly_rent = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    security_deposit = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    advance_payment = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    agency_fees = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    charges = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    commission_rate = serializers.FloatField(required=False, min_value=0, max_value=1)
    commission_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    maintenance_threshold = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    default_commission_text = serializers.CharField(required=False, allow_blank=True)
    payment_day = serializers.CharField(required=False, max_length=2)
    payment_terms = serializers.CharField(required=False, allow_blank=True)


class GenerateDocumentSerializer(serializers.Serializer):
    """Options of the generate_document and preview actions."""

    template_id = serializers.IntegerField(required=False, allow_null=True)
    effective_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False, allow_null=True)
    renewal_notice_months = serializers.IntegerField(required=False, min_value=0)
    location_jurisdiction = serializers.CharField(required=False, max_length=100)
    financial_terms = FinancialTermsSerializer(required=False)

    def to_overrides(self):
        overrides = {
            key: value for key, value in self.validated_data.items()
            if key != 'template_id' and value is not None
        }
        if 'financial_terms' in overrides:
            overrides['financial_terms'] = {
                key: float(value) if not isinstance(value, str) else value
                for key, value in overrides['financial_terms'].items()
            }
        return overrides


class TerminateContractSerializer(serializers.Serializer):
    end_date = serializers.DateField(required=False)


class RenewContractSerializer(serializers.Serializer):
    months = serializers.IntegerField(default=12, min_value=1, max_value=120)
    monthly_rent = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)


# =============================================================================
# TEMPLATE SERIALIZERS
# =============================================================================

class ContractTemplateSerializer(serializers.ModelSerializer):
    is_platform_wide = serializers.BooleanField(read_only=True)

    class Meta:
        model = ContractTemplate
        fields = [
            'id',
            'agency',
            'is_platform_wide',
            'contract_type',
            'usage_type',
            'name',
            'language',
            'version',
            'body',
            'variables',
            'metadata',
            'is_active',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'agency', 'is_platform_wide', 'created_by', 'created_at', 'updated_at']

    def validate_body(self, value):
        if not value or not value.strip():
            raise serializers.ValidationError("Le corps du modèle est obligatoire.")
        return value

    def validate_variables(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError("Les variables doivent être une liste de chaînes.")
        return value


class RenderTemplateSerializer(serializers.Serializer):
    """Body (or stored template id) and a nested context to render against."""

    template_id = serializers.IntegerField(required=False)
    body = serializers.CharField(required=False, allow_blank=True)
    context = serializers.DictField(required=False, default=dict)


# =============================================================================
# VERSION AND INVENTORY SERIALIZERS
# =============================================================================

class ContractVersionSerializer(serializers.ModelSerializer):

    class Meta:
        model = ContractVersion
        fields = ['id', 'contract', 'version_number', 'body', 'metadata', 'created_by', 'created_at']
        read_only_fields = fields


class InventorySerializer(serializers.ModelSerializer):
    """
    Entry or exit inspection.

    The tenant defaults to the contract's tenant. Property, contract and
    tenant must belong to the agency, and the contract to the property.
    """

    property_title = serializers.CharField(source='property.title', read_only=True)
    tenant_name = serializers.SerializerMethodField()

    class Meta:
        model = Inventory
        fields = [
            'id',
            'agency',
            'property',
            'property_title',
            'contract',
            'tenant',
            'tenant_name',
            'type',
            'status',
            'date',
            'rooms',
            'meter_readings',
            'keys_count',
            'observations',
            'signed_at',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'agency', 'status', 'signed_at', 'created_by', 'created_at', 'updated_at']

    def get_tenant_name(self, obj):
        return obj.tenant.get_full_name() if obj.tenant_id else None

    def validate_rooms(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Les pièces doivent être une liste.")
        for room in value:
            if not isinstance(room, dict) or not room.get('name'):
                raise serializers.ValidationError("Chaque pièce doit avoir un nom.")
            elements = room.get('elements') or []
            if not isinstance(elements, list):
                raise serializers.ValidationError(f"Les éléments de « {room['name']} » doivent être une liste.")
            for element in elements:
                if not isinstance(element, dict) or not element.get('name'):
                    raise serializers.ValidationError(f"Chaque élément de « {room['name']} » doit avoir un nom.")
                if element.get('condition') not in INVENTORY_CONDITIONS:
                    raise serializers.ValidationError(
                        f"État inconnu pour « {element['name']} » ({', '.join(INVENTORY_CONDITIONS)})."
                    )
        return value

    def validate_meter_readings(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("Les relevés de compteurs doivent être un objet.")
        return value

    def validate(self, data):
        errors = {}

        def _value(key):
            if key in data:
                return data[key]
            return getattr(self.instance, key, None)

        property_obj = _value('property')
        contract = _value('contract')
        tenant = _value('tenant')

        agency = self.context.get('agency') or getattr(self.instance, 'agency', None)
        if agency is not None:
            for key, obj in (('property', property_obj), ('contract', contract), ('tenant', tenant)):
                if obj is not None and obj.agency_id != agency.pk:
                    errors[key] = "Cet enregistrement n'appartient pas à votre agence."

        if contract is not None and property_obj is not None and contract.property_id != property_obj.pk:
            errors['contract'] = "Le contrat doit porter sur ce bien."

        if errors:
            raise serializers.ValidationError(errors)

        if contract is not None and tenant is None and contract.tenant_id:
            data['tenant'] = contract.tenant

        return data
