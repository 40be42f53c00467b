"""
Notification services: in-app notifications, the e-mail queue and the
scheduled checks (payment reminders, contract expiry).

Key Features:
- Fan-out of a notification to every active member of an agency
- Per-user preferences (NotificationSettings) gate in-app notifications;
  the agency director's preferences gate the e-mails sent to tenants
- Payment reminders REMINDER_DAYS_BEFORE days ahead of the rent due date,
  on the due date and when overdue, at most once per contract and day
- Contract expiry warnings
- Delivery of queued e-mails with Django's send_mail
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from django.conf import settings
from django.core.mail import send_mail

from services.business_logic import format_currency_xof, format_short_date, get_month_name

from .models import NOTIFICATION_SETTING_FIELDS, EmailNotification, Notification, NotificationSettings

logger = logging.getLogger(__name__)

# Preference flag that controls each e-mail type
EMAIL_SETTING_FIELDS = {
    'payment_reminder': 'payment_reminder',
    'contract_expiry': 'contract_expiry',
    'receipt_generated': 'rental_alert',
    'new_contract': 'rental_alert',
}


# =============================================================================
# PREFERENCES
# =============================================================================

def get_notification_settings(user) -> NotificationSettings:
    """Stored preferences of the user, or unsaved defaults (everything on)."""
    existing = NotificationSettings.objects.filter(user=user).first()
    return existing if existing is not None else NotificationSettings(user=user)


def update_notification_settings(user, **flags) -> NotificationSettings:
    """Create or update the preferences of a user; unknown keys are ignored."""
    values = {key: bool(value) for key, value in flags.items() if key in NOTIFICATION_SETTING_FIELDS}
    preferences, _ = NotificationSettings.objects.update_or_create(user=user, defaults=values)
    return preferences


def filter_recipients(users: Iterable, type: str) -> List:
    """Users who have not switched `type` off."""
    users = list(users)
    if type not in NOTIFICATION_SETTING_FIELDS or not users:
        return users
    muted = set(
        NotificationSettings.objects.filter(user__in=users, **{type: False}).values_list('user_id', flat=True)
    )
    return [user for user in users if user.pk not in muted]


def agency_sends_email(agency, type: str) -> bool:
    """False when a director of the agency has switched the matching type off."""
    field = EMAIL_SETTING_FIELDS.get(type)
    if agency is None or field is None:
        return True
    director_ids = agency.members.filter(is_active=True, role='director').values('user_id')
    return not NotificationSettings.objects.filter(user_id__in=director_ids, **{field: False}).exists()


# =============================================================================
# CREATION HELPERS
# =============================================================================

def notify_agency_users(agency, type: str, title: str, message: str,
                        data: Optional[Dict[str, Any]] = None, priority: str = 'medium') -> int:
    """Create one notification per active member of the agency who accepts `type`."""
    users = filter_recipients((membership.user for membership in agency.get_active_users()), type)
    notifications = [
        Notification(
            user=user,
            agency=agency,
            type=type,
            title=title,
            message=message,
            data=data or {},
            priority=priority,
        )
        for user in users
    ]
    Notification.objects.bulk_create(notifications)
    return len(notifications)


def notify_user(user, type: str, title: str, message: str, agency=None,
                data: Optional[Dict[str, Any]] = None, priority: str = 'medium') -> Optional[Notification]:
    """Create one notification; returns None when the user switched `type` off."""
    if not filter_recipients([user], type):
        return None
    return Notification.objects.create(
        user=user,
        agency=agency,
        type=type,
        title=title,
        message=message,
        data=data or {},
        priority=priority,
    )


def queue_email(agency, type: str, recipient_email: str, subject: str, content: str,
                reference_date: Optional[date] = None) -> Optional[EmailNotification]:
    """
    Queue an e-mail.

    Returns None when there is no recipient or when the agency has
    switched this kind of e-mail off.
    """
    if not recipient_email:
        return None
    if not agency_sends_email(agency, type):
        logger.info(f"{type} e-mail to {recipient_email} not queued: disabled for agency {agency.pk}")
        return None
    return EmailNotification.objects.create(
        agency=agency,
        type=type,
        recipient_email=recipient_email,
        subject=subject,
        content=content,
        reference_date=reference_date,
    )


def _already_notified(user, type: str, contract_id: int, notice_date: date) -> bool:
    return Notification.objects.filter(
        user=user,
        type=type,
        data__contract_id=contract_id,
        data__notice_date=notice_date.isoformat(),
    ).exists()


def _email_already_queued(type: str, recipient_email: str, subject: str, reference_date: date) -> bool:
    return EmailNotification.objects.filter(
        type=type,
        recipient_email=recipient_email,
        subject=subject,
        reference_date=reference_date,
    ).exists()


# =============================================================================
# PAYMENT REMINDERS
# =============================================================================

def build_reminder_text(name: str, days: int, due_date: date):
    """
    Title and message of a payment reminder, days being due date minus today.

    Example:
        build_reminder_text('Awa Koné', 3, date(2025, 1, 5))
        -> ("Rappel Paiement: Awa Koné",
            "Le loyer de Awa Koné arrive à échéance dans 3 jours (le 05/01/2025).")
    """
    if days > 0:
        return (
            f"Rappel Paiement: {name}",
            f"Le loyer de {name} arrive à échéance dans {days} jours (le {format_short_date(due_date)}).",
        )
    if days == 0:
        return (
            f"Loyer dû aujourd'hui: {name}",
            f"Le loyer de {name} doit être réglé aujourd'hui.",
        )
    return (
        f"Retard Paiement: {name}",
        f"Le loyer de {name} est en retard de {abs(days)} jours.",
    )


def check_and_send_reminders(agency, today: Optional[date] = None) -> int:
    """
    Send payment reminders for the active rental contracts of an agency.

    A reminder is due when the rent of the current month is due within
    REMINDER_DAYS_BEFORE days (or overdue) and no receipt exists for the
    month. Each agency user gets at most one reminder per contract and
    reference day; the day is stored in the notification data so that a
    rerun for the same `today` creates nothing.

    Returns:
        int: number of notifications created
    """
    from contracts.models import Contract

    today = today or date.today()
    reminder_days = settings.GESTION360.get('REMINDER_DAYS_BEFORE', 5)
    users = filter_recipients((membership.user for membership in agency.get_active_users()), 'payment_reminder')

    contracts = Contract.objects.filter(
        agency=agency, status='active', tenant__isnull=False
    ).select_related('tenant', 'property')

    created = 0
    for contract in contracts:
        due_date = contract.get_due_date(today.year, today.month)
        days = (due_date - today).days
        if days > reminder_days:
            continue

        if contract.receipts.filter(period_month=today.month, period_year=today.year).exists():
            continue

        name = contract.tenant.get_full_name()
        title, message = build_reminder_text(name, days, due_date)
        data = {
            'contract_id': contract.pk,
            'tenant_id': contract.tenant_id,
            'notice_date': today.isoformat(),
        }
        priority = 'high' if days < 0 else 'medium'

        for user in users:
            if _already_notified(user, 'payment_reminder', contract.pk, today):
                continue
            Notification.objects.create(
                user=user,
                agency=agency,
                type='payment_reminder',
                title=title,
                message=message,
                data=data,
                priority=priority,
            )
            created += 1

        tenant_email = contract.tenant.email
        subject = f"Rappel de loyer - {get_month_name(today.month)} {today.year}"
        if tenant_email and not _email_already_queued('payment_reminder', tenant_email, subject, today):
            queue_email(
                agency,
                'payment_reminder',
                tenant_email,
                subject,
                f"Bonjour {name},\n\n{message}\n"
                f"Montant: {format_currency_xof(contract.monthly_rent)}\n\n{agency.name}",
                reference_date=today,
            )

    logger.info(f"{created} payment reminders created for agency {agency.pk}")
    return created


# =============================================================================
# CONTRACT EXPIRY
# =============================================================================

def check_contract_expiry(agency, today: Optional[date] = None, days: Optional[int] = None) -> int:
    """
    Warn agency users about active contracts ending within `days` days.

    Returns:
        int: number of notifications created
    """
    from contracts.models import Contract

    today = today or date.today()
    if days is None:
        days = settings.GESTION360.get('CONTRACT_EXPIRY_WARNING_DAYS', 30)
    users = filter_recipients((membership.user for membership in agency.get_active_users()), 'contract_expiry')

    contracts = Contract.objects.filter(
        agency=agency,
        status='active',
        end_date__isnull=False,
        end_date__gte=today,
        end_date__lte=today + timedelta(days=days),
    ).select_related('property', 'tenant')

    created = 0
    for contract in contracts:
        remaining = (contract.end_date - today).days
        title = f"Expiration de contrat: {contract.property.title}"
        message = (
            f"Le contrat {contract.business_id or contract.pk} expire le "
            f"{format_short_date(contract.end_date)} (dans {remaining} jours)."
        )
        for user in users:
            if _already_notified(user, 'contract_expiry', contract.pk, today):
                continue
            Notification.objects.create(
                user=user,
                agency=agency,
                type='contract_expiry',
                title=title,
                message=message,
                data={
                    'contract_id': contract.pk,
                    'end_date': contract.end_date.isoformat(),
                    'notice_date': today.isoformat(),
                },
                priority='high' if remaining <= 7 else 'medium',
            )
            created += 1

    logger.info(f"{created} contract expiry notifications created for agency {agency.pk}")
    return created


# =============================================================================
# E-MAIL DELIVERY
# =============================================================================

def send_pending_emails(limit: int = 100) -> Dict[str, int]:
    """
    Send queued e-mails, oldest first.

    Returns:
        dict: {'sent': n, 'failed': n}
    """
    results = {'sent': 0, 'failed': 0}
    pending = EmailNotification.objects.filter(status='pending').order_by('created_at')[:limit]

    for email in pending:
        try:
            send_mail(
                email.subject,
                email.content,
                settings.DEFAULT_FROM_EMAIL,
                [email.recipient_email],
                fail_silently=False,
            )
        except Exception as e:
            logger.error(f"E-mail {email.pk} to {email.recipient_email} failed: {str(e)}")
            email.mark_as_failed(e)
            results['failed'] += 1
            continue

        email.mark_as_sent()
        results['sent'] += 1

    logger.info(f"E-mail queue processed: {results['sent']} sent, {results['failed']} failed")
    return results
