"""
Agencies Filters - Gestion360 Backend API
django-filter FilterSets for the platform console lists.
"""

from django_filters import rest_framework as filters
from django_filters import CharFilter, DateFilter, NumberFilter

from .models import Agency, AgencyRegistrationRequest, AgencySubscription, AgencyRanking


class AgencyFilter(filters.FilterSet):
    city = CharFilter(field_name='city', lookup_expr='icontains', help_text='Filter by city (partial match)')
    created_after = DateFilter(field_name='created_at', lookup_expr='date__gte')
    created_before = DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = Agency
        fields = ['status', 'is_accredited', 'city']


class RegistrationRequestFilter(filters.FilterSet):
    city = CharFilter(field_name='city', lookup_expr='icontains')

    class Meta:
        model = AgencyRegistrationRequest
        fields = ['status', 'city']


class SubscriptionFilter(filters.FilterSet):
    due_before = DateFilter(
        field_name='next_payment_date',
        lookup_expr='lte',
        help_text='Subscriptions due on or before this date (YYYY-MM-DD)'
    )

    class Meta:
        model = AgencySubscription
        fields = ['status', 'plan_type', 'agency']


class RankingFilter(filters.FilterSet):
    max_rank = NumberFilter(field_name='rank', lookup_expr='lte', help_text='Top N agencies')

    class Meta:
        model = AgencyRanking
        fields = ['year', 'agency']
