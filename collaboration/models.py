"""
Collaboration models for the Gestion360 application.

- Announcement: a property offered for rent or sale to the other agencies
- AnnouncementInterest: another agency's interest in an announcement
- Message: direct message between two users, possibly about a property or
  an announcement
"""

import logging

from django.conf import settings
from django.db import models
from django.utils import timezone

from agencies.models import Agency
from properties.models import Property

logger = logging.getLogger(__name__)


# =============================================================================
# ANNOUNCEMENTS
# =============================================================================

class Announcement(models.Model):
    """
    Property published to the platform. Active announcements that have not
    expired are visible to every agency; only the publishing agency edits them.
    """

    TYPE_CHOICES = [
        ('location', 'Location'),
        ('vente', 'Vente'),
    ]

    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='announcements')
    property = models.ForeignKey(Property, on_delete=models.CASCADE, related_name='announcements')
    title = models.CharField(max_length=255)
    description = models.TextField()
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    views = models.PositiveIntegerField(default=0)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'announcements'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'expires_at']),
        ]

    def __str__(self):
        return f"{self.title} ({self.get_type_display()})"

    def is_visible(self, now=None):
        now = now or timezone.now()
        return self.is_active and (self.expires_at is None or self.expires_at > now)


class AnnouncementInterest(models.Model):
    """Interest of a user of another agency, reviewed by the publishing agency."""

    STATUS_CHOICES = [
        ('pending', 'En attente'),
        ('approved', 'Acceptée'),
        ('rejected', 'Refusée'),
    ]

    announcement = models.ForeignKey(Announcement, on_delete=models.CASCADE, related_name='interests')
    agency = models.ForeignKey(Agency, on_delete=models.CASCADE, related_name='announcement_interests')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='announcement_interests'
    )
    message = models.TextField(blank=True, default='')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'announcement_interests'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['announcement', 'user'], name='unique_interest_per_user')
        ]

    def __str__(self):
        return f"{self.agency.name} → {self.announcement.title} ({self.get_status_display()})"


# =============================================================================
# MESSAGES
# =============================================================================

class Message(models.Model):

    agency = models.ForeignKey(Agency, on_delete=models.SET_NULL, null=True, blank=True,
                               related_name='messages', help_text="Agency of the sender")
    sender = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='sent_messages')
    receiver = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE,
                                 related_name='received_messages')
    property = models.ForeignKey(Property, on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    announcement = models.ForeignKey(Announcement, on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='messages')
    subject = models.CharField(max_length=255)
    content = models.TextField()
    is_read = models.BooleanField(default=False, db_index=True)
    attachments = models.JSONField(default=list, blank=True, help_text="List of attachment URLs")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'messages'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['receiver', 'is_read']),
        ]

    def __str__(self):
        return f"{self.subject} ({self.sender} → {self.receiver})"

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.save(update_fields=['is_read'])
