"""
API Serializers for notifications, queued e-mails and the audit log.
"""

from rest_framework import serializers

from .models import AuditLog, EmailNotification, Notification, NotificationSettings


class NotificationSerializer(serializers.ModelSerializer):

    class Meta:
        model = Notification
        fields = ['id', 'agency', 'type', 'title', 'message', 'data', 'is_read', 'priority', 'created_at']
        read_only_fields = ['id', 'agency', 'type', 'title', 'message', 'data', 'priority', 'created_at']


class NotificationSettingsSerializer(serializers.ModelSerializer):

    class Meta:
        model = NotificationSettings
        fields = [
            'payment_reminder', 'new_message', 'rental_alert', 'property_update',
            'contract_expiry', 'new_interest', 'updated_at',
        ]
        read_only_fields = ['updated_at']


class EmailNotificationSerializer(serializers.ModelSerializer):

    class Meta:
        model = EmailNotification
        fields = [
            'id', 'agency', 'type', 'recipient_email', 'subject', 'content',
            'status', 'sent_at', 'error_message', 'reference_date', 'created_at',
        ]
        read_only_fields = fields


class AuditLogSerializer(serializers.ModelSerializer):
    agency = serializers.IntegerField(source='agency_id', read_only=True)
    username = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = [
            'id', 'user', 'username', 'agency', 'action', 'table_name', 'record_id',
            'old_values', 'new_values', 'ip_address', 'user_agent', 'created_at',
        ]
        read_only_fields = fields

    def get_username(self, obj):
        return obj.user.get_username() if obj.user_id else None
