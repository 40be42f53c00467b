"""
Receipts Filters - Gestion360 Backend API
"""

from django_filters import rest_framework as filters
from django_filters import DateFilter

from .models import FinancialStatement, FinancialTransaction, RentReceipt


class RentReceiptFilter(filters.FilterSet):
    paid_after = DateFilter(field_name='payment_date', lookup_expr='gte')
    paid_before = DateFilter(field_name='payment_date', lookup_expr='lte')

    class Meta:
        model = RentReceipt
        fields = ['contract', 'tenant', 'owner', 'property', 'period_month', 'period_year', 'payment_method']


class FinancialTransactionFilter(filters.FilterSet):
    date_after = DateFilter(field_name='date', lookup_expr='gte')
    date_before = DateFilter(field_name='date', lookup_expr='lte')

    class Meta:
        model = FinancialTransaction
        fields = ['entity_type', 'owner', 'tenant', 'property', 'type', 'category']


class FinancialStatementFilter(filters.FilterSet):

    class Meta:
        model = FinancialStatement
        fields = ['entity_type', 'owner', 'tenant']
