"""
Collaboration Filters - Gestion360 Backend API
"""

from django_filters import rest_framework as filters
from django_filters import BooleanFilter, CharFilter, ChoiceFilter

from agencies.permissions import get_user_agency

from .models import Announcement, AnnouncementInterest, Message


class AnnouncementFilter(filters.FilterSet):
    """
    mine=true keeps the announcements of the user's agency,
    mine=false those of the other agencies.
    """

    commune = CharFilter(field_name='property__location__commune', lookup_expr='icontains')
    mine = BooleanFilter(method='filter_mine')

    class Meta:
        model = Announcement
        fields = ['type', 'is_active', 'agency', 'property']

    def filter_mine(self, queryset, name, value):
        agency = get_user_agency(self.request.user)
        if value:
            return queryset.filter(agency=agency) if agency else queryset.none()
        return queryset.exclude(agency=agency) if agency else queryset


class AnnouncementInterestFilter(filters.FilterSet):
    """direction=sent: interests of the user's agency; received: interests in its announcements."""

    direction = ChoiceFilter(
        choices=[('sent', 'Envoyées'), ('received', 'Reçues')],
        method='filter_direction'
    )

    class Meta:
        model = AnnouncementInterest
        fields = ['status', 'announcement']

    def filter_direction(self, queryset, name, value):
        agency = get_user_agency(self.request.user)
        if agency is None:
            return queryset
        if value == 'sent':
            return queryset.filter(agency=agency)
        return queryset.filter(announcement__agency=agency)


class MessageFilter(filters.FilterSet):
    """box=inbox: received messages; box=sent: sent ones."""

    box = ChoiceFilter(choices=[('inbox', 'Reçus'), ('sent', 'Envoyés')], method='filter_box')

    class Meta:
        model = Message
        fields = ['is_read', 'announcement', 'property']

    def filter_box(self, queryset, name, value):
        if value == 'inbox':
            return queryset.filter(receiver=self.request.user)
        return queryset.filter(sender=self.request.user)
