"""
URL configuration for the notifications app.

- /api/v1/notifications/         - Own notifications (+ mark_read, mark_all_read, unread_count, settings)
- /api/v1/email-notifications/   - E-mail queue (read only)
- /api/v1/audit-logs/            - Audit log (read only)
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import AuditLogViewSet, EmailNotificationViewSet, NotificationViewSet

router = DefaultRouter()
router.register(r'notifications', NotificationViewSet, basename='notification')
router.register(r'email-notifications', EmailNotificationViewSet, basename='email-notification')
router.register(r'audit-logs', AuditLogViewSet, basename='audit-log')

urlpatterns = [
    path('', include(router.urls)),
]
