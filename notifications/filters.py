"""
Notifications Filters - Gestion360 Backend API
"""

from django_filters import rest_framework as filters
from django_filters import DateFilter

from .models import AuditLog, EmailNotification, Notification


class NotificationFilter(filters.FilterSet):

    class Meta:
        model = Notification
        fields = ['type', 'is_read', 'priority']


class EmailNotificationFilter(filters.FilterSet):

    class Meta:
        model = EmailNotification
        fields = ['type', 'status']


class AuditLogFilter(filters.FilterSet):
    created_after = DateFilter(field_name='created_at', lookup_expr='date__gte')
    created_before = DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = AuditLog
        fields = ['action', 'table_name', 'record_id', 'user']
