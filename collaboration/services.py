"""
Collaboration services: interests in announcements, their review, messages
and announcement expiry. Every step notifies the users concerned through
notifications.services, which honours their notification settings.
"""

import logging

from django.db.models import F, Q
from django.utils import timezone

from notifications.services import notify_agency_users, notify_user
from services import BusinessLogicError

from .models import Announcement, AnnouncementInterest, Message

logger = logging.getLogger(__name__)


def visible_announcements(now=None):
    """Active announcements that have not expired."""
    now = now or timezone.now()
    return Announcement.objects.filter(is_active=True).filter(
        Q(expires_at__isnull=True) | Q(expires_at__gt=now)
    )


def register_view(announcement):
    Announcement.objects.filter(pk=announcement.pk).update(views=F('views') + 1)
    announcement.refresh_from_db(fields=['views'])
    return announcement.views


# =============================================================================
# INTERESTS
# =============================================================================

def express_interest(announcement, user, agency, message=''):
    """
    Record the interest of `user` (member of `agency`) and alert the
    publishing agency.

    Raises:
        BusinessLogicError: own announcement, expired or inactive
            announcement, or interest already expressed
    """
    if agency is None:
        raise BusinessLogicError("Vous devez être rattaché à une agence.")
    if announcement.agency_id == agency.pk:
        raise BusinessLogicError("Impossible de manifester un intérêt pour une annonce de votre agence.")
    if not announcement.is_visible():
        raise BusinessLogicError("Cette annonce n'est plus disponible.")
    if announcement.interests.filter(user=user).exists():
        raise BusinessLogicError("Vous avez déjà manifesté votre intérêt pour cette annonce.")

    interest = AnnouncementInterest.objects.create(
        announcement=announcement,
        agency=agency,
        user=user,
        message=message or '',
    )

    notify_agency_users(
        announcement.agency,
        'new_interest',
        f"Nouvel intérêt: {announcement.title}",
        f"L'agence {agency.name} est intéressée par votre annonce « {announcement.title} ».",
        data={'announcement_id': announcement.pk, 'interest_id': interest.pk, 'agency_id': agency.pk},
    )
    logger.info(f"Agency {agency.pk} interested in announcement {announcement.pk}")
    return interest


def review_interest(interest, status):
    """Approve or reject a pending interest and tell the interested user."""
    if status not in ('approved', 'rejected'):
        raise BusinessLogicError(f"Statut inconnu: {status}")
    if interest.status != 'pending':
        raise BusinessLogicError("Cette demande a déjà été traitée.")

    interest.status = status
    interest.save(update_fields=['status'])

    announcement = interest.announcement
    verdict = 'acceptée' if status == 'approved' else 'refusée'
    notify_user(
        interest.user,
        'new_interest',
        f"Demande {verdict}: {announcement.title}",
        f"L'agence {announcement.agency.name} a {verdict} votre demande pour « {announcement.title} ».",
        agency=interest.agency,
        data={'announcement_id': announcement.pk, 'interest_id': interest.pk, 'status': status},
        priority='high' if status == 'approved' else 'medium',
    )
    return interest


# =============================================================================
# MESSAGES
# =============================================================================

def send_message(sender, receiver, subject, content, agency=None, **references):
    """
    Store a message and notify the receiver.

    references: property, announcement, attachments
    """
    if sender.pk == receiver.pk:
        raise BusinessLogicError("Vous ne pouvez pas vous écrire à vous-même.")

    message = Message.objects.create(
        agency=agency,
        sender=sender,
        receiver=receiver,
        subject=subject,
        content=content,
        property=references.get('property'),
        announcement=references.get('announcement'),
        attachments=references.get('attachments') or [],
    )

    sender_name = sender.get_full_name() or sender.get_username()
    notify_user(
        receiver,
        'new_message',
        f"Nouveau message: {subject}",
        f"{sender_name} vous a envoyé un message.",
        data={'message_id': message.pk, 'sender_id': sender.pk},
    )
    return message


# =============================================================================
# EXPIRY
# =============================================================================

def deactivate_expired_announcements(now=None):
    """Switch off active announcements past their expiry date; returns the count."""
    now = now or timezone.now()
    updated = Announcement.objects.filter(is_active=True, expires_at__isnull=False, expires_at__lte=now).update(
        is_active=False, updated_at=now
    )
    logger.info(f"{updated} expired announcements deactivated")
    return updated
