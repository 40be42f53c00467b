"""
Signal handlers: audit trail and notifications on record changes.

Every save and delete of the audited models writes an AuditLog row with a
JSON snapshot of the record; the user, IP address and user agent come from
gestion360.middleware. Receipts and contracts also queue notifications.
"""

import json
import logging

from django.core.serializers.json import DjangoJSONEncoder
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver
from django.forms.models import model_to_dict

from agencies.models import Agency
from contracts.models import Contract
from gestion360.middleware import get_current_request_context
from properties.models import Owner, Property, Tenant
from receipts.models import RentReceipt
from services.business_logic import format_currency_xof, format_short_date

from .models import AuditLog
from .services import notify_agency_users, queue_email

logger = logging.getLogger(__name__)

AUDITED_MODELS = (Agency, Owner, Tenant, Property, Contract, RentReceipt)
EXCLUDED_FIELDS = ('documents',)


def snapshot(instance):
    """JSON-safe dict of a model instance (dates, decimals as strings)."""
    data = model_to_dict(instance, exclude=EXCLUDED_FIELDS)
    data['id'] = instance.pk
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


def _agency_id(instance):
    if isinstance(instance, Agency):
        return instance.pk
    return getattr(instance, 'agency_id', None)


def write_audit_log(instance, action, old_values=None, new_values=None):
    context = get_current_request_context()
    user = context.get('user')

    agency_id = _agency_id(instance)
    if action == 'DELETE' and isinstance(instance, Agency):
        agency_id = None

    AuditLog.objects.create(
        user=user if user is not None and getattr(user, 'pk', None) else None,
        agency_id=agency_id,
        action=action,
        table_name=instance._meta.db_table,
        record_id=str(instance.pk),
        old_values=old_values,
        new_values=new_values,
        ip_address=context.get('ip_address') or '',
        user_agent=context.get('user_agent') or '',
    )


# =============================================================================
# AUDIT TRAIL
# =============================================================================

def capture_previous_state(sender, instance, **kwargs):
    instance._audit_old_values = None
    if instance.pk is None:
        return
    previous = sender._default_manager.filter(pk=instance.pk).first()
    if previous is not None:
        instance._audit_old_values = snapshot(previous)


def audit_save(sender, instance, created, raw=False, **kwargs):
    if raw:
        return
    try:
        write_audit_log(
            instance,
            'INSERT' if created else 'UPDATE',
            old_values=None if created else getattr(instance, '_audit_old_values', None),
            new_values=snapshot(instance),
        )
    except Exception as e:
        logger.error(f"Audit log failed for {sender.__name__} {instance.pk}: {str(e)}")


def audit_delete(sender, instance, **kwargs):
    try:
        write_audit_log(instance, 'DELETE', old_values=snapshot(instance))
    except Exception as e:
        logger.error(f"Audit log failed for deleted {sender.__name__} {instance.pk}: {str(e)}")


for audited_model in AUDITED_MODELS:
    label = audited_model._meta.label_lower
    pre_save.connect(capture_previous_state, sender=audited_model, dispatch_uid=f'audit_pre_save_{label}')
    post_save.connect(audit_save, sender=audited_model, dispatch_uid=f'audit_post_save_{label}')
    post_delete.connect(audit_delete, sender=audited_model, dispatch_uid=f'audit_post_delete_{label}')


# =============================================================================
# NOTIFICATIONS
# =============================================================================

@receiver(post_save, sender=RentReceipt, dispatch_uid='notify_receipt_generated')
def notify_receipt_generated(sender, instance, created, raw=False, **kwargs):
    """Alert the agency team and e-mail the tenant when a receipt is issued."""
    if not created or raw:
        return

    tenant = instance.tenant
    tenant_name = tenant.get_full_name() if tenant else ''
    period = instance.get_period_label()

    notify_agency_users(
        instance.agency,
        'rental_alert',
        f"Quittance générée: {tenant_name}",
        f"Quittance {instance.receipt_number} de {format_currency_xof(instance.total_amount)} pour {period}.",
        data={
            'receipt_id': instance.pk,
            'contract_id': instance.contract_id,
            'tenant_id': instance.tenant_id,
        },
    )

    if tenant and tenant.email:
        queue_email(
            instance.agency,
            'receipt_generated',
            tenant.email,
            f"Quittance de loyer {period} - {instance.receipt_number}",
            f"Bonjour {tenant_name},\n\n"
            f"Nous accusons réception de votre paiement de {format_currency_xof(instance.total_amount)} "
            f"le {format_short_date(instance.payment_date)} pour la période {period}.\n"
            f"Quittance n° {instance.receipt_number}.\n\n{instance.agency.name}",
        )


@receiver(post_save, sender=Contract, dispatch_uid='notify_new_contract')
def notify_new_contract(sender, instance, created, raw=False, **kwargs):
    """E-mail the tenant when a contract naming them is created."""
    if not created or raw or instance.tenant_id is None:
        return

    tenant = instance.tenant
    if not tenant.email:
        return

    queue_email(
        instance.agency,
        'new_contract',
        tenant.email,
        f"Nouveau contrat - {instance.property.title}",
        f"Bonjour {tenant.get_full_name()},\n\n"
        f"Votre contrat ({instance.get_contract_type_display()}) pour le bien "
        f"« {instance.property.title} » prend effet le {format_short_date(instance.start_date)}.\n\n"
        f"{instance.agency.name}",
    )
