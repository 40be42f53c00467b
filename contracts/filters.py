"""
Contracts Filters - Gestion360 Backend API
"""

from datetime import date, timedelta

from django_filters import rest_framework as filters
from django_filters import BooleanFilter, DateFilter, NumberFilter

from .models import Contract, ContractTemplate, Inventory


class ContractFilter(filters.FilterSet):
    """
    Filtering for contracts by type, status, parties and dates.

    expiring_within=N keeps active contracts ending in the next N days.
    """

    start_after = DateFilter(field_name='start_date', lookup_expr='gte')
    start_before = DateFilter(field_name='start_date', lookup_expr='lte')
    end_before = DateFilter(field_name='end_date', lookup_expr='lte')
    min_rent = NumberFilter(field_name='monthly_rent', lookup_expr='gte')
    max_rent = NumberFilter(field_name='monthly_rent', lookup_expr='lte')
    expiring_within = NumberFilter(method='filter_expiring_within', help_text='Days')

    class Meta:
        model = Contract
        fields = ['contract_type', 'status', 'property', 'owner', 'tenant']

    def filter_expiring_within(self, queryset, name, value):
        today = date.today()
        return queryset.filter(
            status='active',
            end_date__gte=today,
            end_date__lte=today + timedelta(days=int(value)),
        )


class ContractTemplateFilter(filters.FilterSet):
    platform_wide = BooleanFilter(field_name='agency', lookup_expr='isnull')

    class Meta:
        model = ContractTemplate
        fields = ['contract_type', 'usage_type', 'language', 'is_active']


class InventoryFilter(filters.FilterSet):
    date_after = DateFilter(field_name='date', lookup_expr='gte')
    date_before = DateFilter(field_name='date', lookup_expr='lte')

    class Meta:
        model = Inventory
        fields = ['property', 'contract', 'tenant', 'type', 'status']
