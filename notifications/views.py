"""
Views for the notifications app.

- /notifications/        the requesting user's own notifications and preferences
- /email-notifications/  the agency's e-mail queue (read only)
- /audit-logs/           change history (admins: all, directors: their agency)
"""

import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, permissions, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from agencies.models import get_user_agency_membership, is_platform_admin
from agencies.permissions import AgencyScopedMixin, AuditContextMixin, IsAgencyMember
from gestion360.api import StandardResultsPagination

from .filters import AuditLogFilter, EmailNotificationFilter, NotificationFilter
from .models import AuditLog, EmailNotification, Notification
from .serializers import (
    AuditLogSerializer,
    EmailNotificationSerializer,
    NotificationSerializer,
    NotificationSettingsSerializer,
)
from . import services as notification_services

logger = logging.getLogger(__name__)


class NotificationViewSet(AuditContextMixin,
                          mixins.ListModelMixin,
                          mixins.RetrieveModelMixin,
                          mixins.UpdateModelMixin,
                          mixins.DestroyModelMixin,
                          viewsets.GenericViewSet):
    """
    API endpoint for the authenticated user's notifications.

    Supports:
    - Filtering by type, is_read, priority
    - POST {id}/mark_read/, POST mark_all_read/, GET unread_count/
    - GET/PUT/PATCH settings/ for the per-type preferences
    """
    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = NotificationFilter
    ordering_fields = ['created_at', 'priority']
    ordering = ['-created_at']

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user)

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):
        notification = self.get_object()
        notification.mark_as_read()
        return Response(self.get_serializer(notification).data)

    @action(detail=False, methods=['post'])
    def mark_all_read(self, request):
        updated = self.get_queryset().filter(is_read=False).update(is_read=True)
        return Response({'success': True, 'updated': updated})

    @action(detail=False, methods=['get'])
    def unread_count(self, request):
        return Response({'count': self.get_queryset().filter(is_read=False).count()})

    @action(detail=False, methods=['get', 'put', 'patch'], url_path='settings', url_name='settings')
    def preferences(self, request):
        """
        Notification preferences of the requesting user.

        GET/PUT/PATCH /api/v1/notifications/settings/
        {"payment_reminder": false}
        """
        current = notification_services.get_notification_settings(request.user)
        if request.method == 'GET':
            return Response(NotificationSettingsSerializer(current).data)

        serializer = NotificationSettingsSerializer(current, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        preferences = notification_services.update_notification_settings(request.user, **serializer.validated_data)
        return Response(NotificationSettingsSerializer(preferences).data)


class EmailNotificationViewSet(AgencyScopedMixin, viewsets.ReadOnlyModelViewSet):
    queryset = EmailNotification.objects.all()
    serializer_class = EmailNotificationSerializer
    permission_classes = [IsAgencyMember]
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = EmailNotificationFilter
    search_fields = ['recipient_email', 'subject']
    ordering = ['-created_at']


class IsAuditReader(permissions.BasePermission):
    """Platform admins and agency directors."""

    message = "Accès réservé au directeur de l'agence."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if is_platform_admin(request.user):
            return True
        membership = get_user_agency_membership(request.user)
        return membership is not None and membership.role == 'director'


class AuditLogViewSet(AuditContextMixin, viewsets.ReadOnlyModelViewSet):
    serializer_class = AuditLogSerializer
    permission_classes = [IsAuditReader]
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = AuditLogFilter
    ordering = ['-created_at']

    def get_queryset(self):
        queryset = AuditLog.objects.select_related('user')
        if is_platform_admin(self.request.user):
            return queryset
        membership = get_user_agency_membership(self.request.user)
        if membership is None:
            return queryset.none()
        return queryset.filter(agency_id=membership.agency_id)
