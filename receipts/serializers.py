"""
API Serializers for rent receipts, transactions and statements.
"""

import logging

from rest_framework import serializers

from contracts.models import Contract
from services.business_logic import PAYMENT_METHOD_CHOICES

from .models import FinancialStatement, FinancialTransaction, OWNER_FEE_CATEGORIES, RentReceipt

logger = logging.getLogger(__name__)


# =============================================================================
# RECEIPT SERIALIZERS
# =============================================================================

class RentReceiptSerializer(serializers.ModelSerializer):
    period_label = serializers.CharField(source='get_period_label', read_only=True)
    tenant_name = serializers.SerializerMethodField()
    property_title = serializers.CharField(source='property.title', read_only=True)

    class Meta:
        model = RentReceipt
        fields = [
            'id',
            'receipt_number',
            'agency',
            'contract',
            'tenant',
            'tenant_name',
            'property',
            'property_title',
            'owner',
            'period_month',
            'period_year',
            'period_label',
            'rent_amount',
            'charges',
            'total_amount',
            'commission_amount',
            'owner_payment',
            'payment_date',
            'payment_method',
            'notes',
            'issued_by',
            'created_at',
        ]
        read_only_fields = fields

    def get_tenant_name(self, obj):
        return obj.tenant.get_full_name() if obj.tenant_id else None


class IssueReceiptSerializer(serializers.Serializer):
    """
    Input of POST /api/v1/receipts/.

    Business rules are checked by receipts.services.validate_receipt_input
    so that every error is reported at once; fields here are all optional.
    """

    contract = serializers.PrimaryKeyRelatedField(queryset=Contract.objects.all(), required=False, allow_null=True)
    rent_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    charges = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0, min_value=0)
    payment_date = serializers.DateField(required=False, allow_null=True)
    period_month = serializers.IntegerField(required=False, allow_null=True)
    period_year = serializers.IntegerField(required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=PAYMENT_METHOD_CHOICES, default='especes')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_contract(self, value):
        agency = self.context.get('agency')
        if value is not None and agency is not None and value.agency_id != agency.pk:
            raise serializers.ValidationError("Contrat non trouvé")
        return value


# =============================================================================
# TRANSACTION SERIALIZERS
# =============================================================================

class FinancialTransactionSerializer(serializers.ModelSerializer):

    class Meta:
        model = FinancialTransaction
        fields = [
            'id',
            'agency',
            'entity_type',
            'owner',
            'tenant',
            'property',
            'type',
            'amount',
            'description',
            'category',
            'date',
            'created_by',
            'created_at',
        ]
        read_only_fields = ['id', 'agency', 'created_by', 'created_at']

    def validate(self, data):
        errors = {}
        entity_type = data.get('entity_type', getattr(self.instance, 'entity_type', None))
        owner = data.get('owner', getattr(self.instance, 'owner', None))
        tenant = data.get('tenant', getattr(self.instance, 'tenant', None))

        if entity_type == 'owner' and owner is None:
            errors['owner'] = "Le propriétaire est obligatoire."
        if entity_type == 'tenant' and tenant is None:
            errors['tenant'] = "Le locataire est obligatoire."

        if entity_type == 'owner' and data.get('type') == 'expense':
            category = data.get('category', 'autre')
            if category not in OWNER_FEE_CATEGORIES:
                errors['category'] = "Catégorie de dépense propriétaire invalide."

        agency = self.context.get('agency')
        if agency is not None:
            for key in ('owner', 'tenant', 'property'):
                obj = data.get(key)
                if obj is not None and obj.agency_id != agency.pk:
                    errors[key] = "Cet enregistrement n'appartient pas à votre agence."

        if errors:
            raise serializers.ValidationError(errors)
        return data


# =============================================================================
# STATEMENT SERIALIZERS
# =============================================================================

class FinancialStatementSerializer(serializers.ModelSerializer):

    class Meta:
        model = FinancialStatement
        fields = [
            'id',
            'agency',
            'entity_type',
            'owner',
            'tenant',
            'period_start',
            'period_end',
            'summary',
            'transactions',
            'generated_by',
            'generated_at',
        ]
        read_only_fields = fields


class FeeSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=255)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    date = serializers.DateField(required=False)
    category = serializers.ChoiceField(choices=[(key, key) for key in OWNER_FEE_CATEGORIES], default='autre')


class StatementPeriodSerializer(serializers.Serializer):
    """Period of a reversal or statement; end must not precede start."""

    start_date = serializers.DateField()
    end_date = serializers.DateField()
    owner = serializers.IntegerField(required=False)
    tenant = serializers.IntegerField(required=False)
    fees = FeeSerializer(many=True, required=False)

    def validate(self, data):
        if data['end_date'] < data['start_date']:
            raise serializers.ValidationError({
                'end_date': "La date de fin doit être postérieure à la date de début."
            })
        return data
