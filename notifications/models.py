"""
Notifications models for the Gestion360 application.

- Notification: in-app message for one agency user
- EmailNotification: outgoing e-mail queue, sent by send_pending_emails
- AuditLog: row-level change history written by signals
- NotificationSettings: per-user opt-outs by notification type
"""

import logging

from django.conf import settings
from django.db import models
from django.utils import timezone

from agencies.models import Agency

logger = logging.getLogger(__name__)


# =============================================================================
# IN-APP NOTIFICATIONS
# =============================================================================

class Notification(models.Model):

    TYPE_CHOICES = [
        ('rental_alert', 'Alerte location'),
        ('payment_reminder', 'Rappel de paiement'),
        ('new_message', 'Nouveau message'),
        ('property_update', 'Mise à jour de bien'),
        ('contract_expiry', 'Expiration de contrat'),
        ('new_interest', 'Nouvel intérêt'),
    ]

    PRIORITY_CHOICES = [
        ('low', 'Basse'),
        ('medium', 'Moyenne'),
        ('high', 'Haute'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='notifications',
                               null=True, blank=True)
    type = models.CharField(max_length=30, choices=TYPE_CHOICES, db_index=True)
    title = models.CharField(max_length=255)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False, db_index=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='medium')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read']),
        ]

    def __str__(self):
        return f"{self.title} → {self.user}"

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.save(update_fields=['is_read'])


# =============================================================================
# E-MAIL QUEUE
# =============================================================================

class EmailNotification(models.Model):
    """
    Queued e-mail. Rows start pending and are sent by the
    send_pending_emails management command.
    """

    TYPE_CHOICES = [
        ('new_user', 'Nouvel utilisateur'),
        ('new_contract', 'Nouveau contrat'),
        ('receipt_generated', 'Quittance générée'),
        ('payment_reminder', 'Rappel de paiement'),
        ('contract_expiry', 'Expiration de contrat'),
    ]

    STATUS_CHOICES = [
        ('pending', 'En attente'),
        ('sent', 'Envoyé'),
        ('failed', 'Échec'),
    ]

    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='email_notifications',
                               null=True, blank=True)
    type = models.CharField(max_length=30, choices=TYPE_CHOICES, db_index=True)
    recipient_email = models.EmailField()
    subject = models.CharField(max_length=255)
    content = models.TextField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending', db_index=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True, default='')
    reference_date = models.DateField(
        null=True, blank=True,
        help_text="Day a scheduled check queued the e-mail for"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'email_notifications'
        ordering = ['-created_at']

    def __str__(self):
        return f"[{self.status}] {self.subject} → {self.recipient_email}"

    def mark_as_sent(self):
        self.status = 'sent'
        self.sent_at = timezone.now()
        self.error_message = ''
        self.save(update_fields=['status', 'sent_at', 'error_message'])

    def mark_as_failed(self, error_message):
        self.status = 'failed'
        self.error_message = str(error_message)
        self.save(update_fields=['status', 'error_message'])


# =============================================================================
# PREFERENCES
# =============================================================================

# Notification types a user can switch off
NOTIFICATION_SETTING_FIELDS = (
    'payment_reminder',
    'new_message',
    'rental_alert',
    'property_update',
    'contract_expiry',
    'new_interest',
)


class NotificationSettings(models.Model):
    """
    Per-user notification preferences, one flag per notification type.

    A user without a row receives everything.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notification_settings'
    )
    payment_reminder = models.BooleanField(default=True)
    new_message = models.BooleanField(default=True)
    rental_alert = models.BooleanField(default=True)
    property_update = models.BooleanField(default=True)
    contract_expiry = models.BooleanField(default=True)
    new_interest = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'notification_settings'
        verbose_name = 'Notification Settings'
        verbose_name_plural = 'Notification Settings'

    def __str__(self):
        return f"Préférences de {self.user}"

    def allows(self, type):
        if type not in NOTIFICATION_SETTING_FIELDS:
            return True
        return getattr(self, type)


# =============================================================================
# AUDIT LOG
# =============================================================================

class AuditLog(models.Model):
    """Snapshot of one INSERT, UPDATE or DELETE on an audited table."""

    ACTION_CHOICES = [
        ('INSERT', 'Insert'),
        ('UPDATE', 'Update'),
        ('DELETE', 'Delete'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='audit_logs')
    agency = models.ForeignKey(Agency, on_delete=models.SET_NULL, null=True, blank=True,
                               related_name='audit_logs', db_constraint=False)
    action = models.CharField(max_length=10, choices=ACTION_CHOICES, db_index=True)
    table_name = models.CharField(max_length=100, db_index=True)
    record_id = models.CharField(max_length=64)
    old_values = models.JSONField(null=True, blank=True)
    new_values = models.JSONField(null=True, blank=True)
    ip_address = models.CharField(max_length=45, blank=True, default='')
    user_agent = models.CharField(max_length=255, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['table_name', 'record_id']),
        ]

    def __str__(self):
        return f"{self.action} {self.table_name}#{self.record_id}"
