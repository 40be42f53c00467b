"""
Notifications Admin - Gestion360 Backend
"""

from django.contrib import admin

from .models import AuditLog, EmailNotification, Notification, NotificationSettings


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'user', 'agency', 'type', 'priority', 'is_read', 'created_at']
    list_filter = ['type', 'priority', 'is_read', 'agency']
    search_fields = ['title', 'message', 'user__username']
    raw_id_fields = ['user']


@admin.register(NotificationSettings)
class NotificationSettingsAdmin(admin.ModelAdmin):
    list_display = ['user', 'payment_reminder', 'rental_alert', 'contract_expiry', 'new_message',
                    'new_interest', 'property_update', 'updated_at']
    search_fields = ['user__username']
    raw_id_fields = ['user']


@admin.register(EmailNotification)
class EmailNotificationAdmin(admin.ModelAdmin):
    list_display = ['subject', 'recipient_email', 'agency', 'type', 'status', 'sent_at', 'reference_date', 'created_at']
    list_filter = ['status', 'type', 'agency']
    search_fields = ['recipient_email', 'subject']
    readonly_fields = ['sent_at', 'error_message', 'created_at']
    actions = ['requeue']

    def requeue(self, request, queryset):
        updated = queryset.filter(status='failed').update(status='pending', error_message='')
        self.message_user(request, f"{updated} e-mail(s) remis en file d'attente.")
    requeue.short_description = 'Requeue failed e-mails'


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'action', 'table_name', 'record_id', 'user', 'ip_address']
    list_filter = ['action', 'table_name']
    search_fields = ['record_id', 'user__username']
    readonly_fields = [
        'user', 'agency', 'action', 'table_name', 'record_id', 'old_values',
        'new_values', 'ip_address', 'user_agent', 'created_at',
    ]

    def has_add_permission(self, request):
        return False
