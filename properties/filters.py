"""
Properties Filters - Gestion360 Backend API
django-filter FilterSets for owners, tenants and properties.

Provides filtering capabilities for:
- Location filtering (commune, quartier inside the location JSON)
- Type, standing and usage filtering
- Rent range and availability
- Tenant payment status and owner land titles
"""

from django.db.models import Q
from django_filters import rest_framework as filters
from django_filters import BooleanFilter, CharFilter, DateFilter, NumberFilter

from .models import Owner, Tenant, Property, PropertyTenantAssignment


# =============================================================================
# PROPERTY FILTERS
# =============================================================================

class PropertyFilter(filters.FilterSet):
    """
    Filtering for properties.

    Location and type live in JSON fields and are matched with key lookups.
    """

    # =========================================================================
    # LOCATION FILTERS
    # =========================================================================

    commune = CharFilter(
        field_name='location__commune',
        lookup_expr='icontains',
        help_text='Filter by commune (partial match)'
    )

    quartier = CharFilter(
        field_name='location__quartier',
        lookup_expr='icontains',
        help_text='Filter by quartier (partial match)'
    )

    has_coordinates = BooleanFilter(
        method='filter_has_coordinates',
        help_text='Filter by presence of lat/lng coordinates'
    )

    # =========================================================================
    # TYPE AND RENT FILTERS
    # =========================================================================

    property_type = CharFilter(
        field_name='details__type',
        lookup_expr='exact',
        help_text='villa, appartement, terrain_nu, immeuble, autres'
    )

    min_rent = NumberFilter(field_name='monthly_rent', lookup_expr='gte', help_text='Minimum monthly rent')
    max_rent = NumberFilter(field_name='monthly_rent', lookup_expr='lte', help_text='Maximum monthly rent')

    created_after = DateFilter(field_name='created_at', lookup_expr='date__gte')
    created_before = DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = Property
        fields = ['owner', 'standing', 'usage_type', 'is_available', 'for_rent', 'for_sale']

    def filter_has_coordinates(self, queryset, name, value):
        ids = [prop.pk for prop in queryset if prop.has_coordinates]
        if value:
            return queryset.filter(pk__in=ids)
        return queryset.exclude(pk__in=ids)


# =============================================================================
# OWNER AND TENANT FILTERS
# =============================================================================

class OwnerFilter(filters.FilterSet):
    city = CharFilter(field_name='city', lookup_expr='icontains')
    name = CharFilter(method='filter_name', help_text='First or last name (partial match)')

    class Meta:
        model = Owner
        fields = ['property_title', 'marital_status', 'city']

    def filter_name(self, queryset, name, value):
        return queryset.filter(first_name__icontains=value) | queryset.filter(last_name__icontains=value)


class TenantFilter(filters.FilterSet):
    name = CharFilter(method='filter_name', help_text='First or last name (partial match)')
    nationality = CharFilter(field_name='nationality', lookup_expr='icontains')

    class Meta:
        model = Tenant
        fields = ['payment_status', 'marital_status', 'nationality']

    def filter_name(self, queryset, name, value):
        return queryset.filter(first_name__icontains=value) | queryset.filter(last_name__icontains=value)


class PropertyTenantAssignmentFilter(filters.FilterSet):
    """
    active_on=YYYY-MM-DD keeps assignments covering that day.
    """

    active_on = DateFilter(method='filter_active_on')

    class Meta:
        model = PropertyTenantAssignment
        fields = ['property', 'tenant', 'status']

    def filter_active_on(self, queryset, name, value):
        return queryset.filter(lease_start__lte=value).filter(
            Q(lease_end__isnull=True) | Q(lease_end__gte=value)
        )
