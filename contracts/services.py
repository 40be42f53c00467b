"""
Contract operations: reference codes, document generation, lifecycle and
inventories (états des lieux).
"""

import logging
from datetime import timedelta

from django.db import transaction
from django.utils import timezone

from services import BusinessLogicError
from services.business_logic import add_months, build_index_map, compute_reference_code

from .generator import build_generation_context, generate_contract_document
from .models import INVENTORY_CONDITIONS, ContractVersion

logger = logging.getLogger(__name__)


def get_contract_reference_code(contract):
    """
    Agency reference code of a contract, e.g. "LOC001/BIEN004/PROP002".

    Positions come from the creation order of the agency's tenants,
    properties and owners.
    """
    agency = contract.agency
    return compute_reference_code(
        tenant_id=contract.tenant_id,
        property_id=contract.property_id,
        owner_id=contract.owner_id,
        tenants=build_index_map(agency.tenants.values('id', 'created_at')),
        properties=build_index_map(agency.properties.values('id', 'created_at')),
        owners=build_index_map(agency.owners.values('id', 'created_at')),
    )


def render_contract(contract, overrides=None, template_id=None):
    """Render the contract document without storing it."""
    context = build_generation_context(contract, overrides)
    return generate_contract_document(context, template_id=template_id, agency=contract.agency)


@transaction.atomic
def generate_and_store_document(contract, user=None, overrides=None, template_id=None):
    """
    Render the contract document, append it to contract.documents and
    keep a numbered ContractVersion of it.

    Returns the RenderedContract.
    """
    rendered = render_contract(contract, overrides, template_id)

    document = rendered.to_dict()
    document['generated_by'] = user.pk if user is not None else None
    document['reference_code'] = get_contract_reference_code(contract)
    latest = contract.versions.order_by('-version_number').values_list('version_number', flat=True).first()
    document['version'] = max(len(contract.documents or []), latest or 0) + 1

    contract.documents = list(contract.documents or []) + [document]
    contract.save(update_fields=['documents', 'updated_at'])

    ContractVersion.objects.create(
        contract=contract,
        version_number=document['version'],
        body=rendered.html,
        metadata={key: value for key, value in document.items() if key != 'html'},
        created_by=user if getattr(user, 'pk', None) else None,
    )

    logger.info(f"Contract document v{document['version']} generated for contract {contract.business_id}")
    return rendered


# =============================================================================
# LIFECYCLE
# =============================================================================

def activate_contract(contract):
    if contract.status not in ('draft', 'renewed'):
        raise BusinessLogicError(f"Impossible d'activer un contrat au statut '{contract.status}'.")

    contract.status = 'active'
    contract.save(update_fields=['status', 'updated_at'])

    if contract.contract_type == 'location':
        contract.property.is_available = False
        contract.property.save(update_fields=['is_available', 'updated_at'])

    logger.info(f"Contract {contract.business_id} activated")
    return contract


def terminate_contract(contract, end_date=None):
    if contract.status not in ('active', 'draft'):
        raise BusinessLogicError(f"Impossible de résilier un contrat au statut '{contract.status}'.")

    contract.status = 'terminated'
    if end_date is not None:
        contract.end_date = end_date
    contract.save(update_fields=['status', 'end_date', 'updated_at'])

    if contract.contract_type == 'location':
        still_rented = contract.property.contracts.filter(
            status='active', contract_type='location'
        ).exclude(pk=contract.pk).exists()
        if not still_rented:
            contract.property.is_available = True
            contract.property.save(update_fields=['is_available', 'updated_at'])

    logger.info(f"Contract {contract.business_id} terminated")
    return contract


@transaction.atomic
def renew_contract(contract, months=12, monthly_rent=None, user=None):
    """
    Close the contract as renewed and create its successor, active from the
    day after the current end date.
    """
    if contract.status not in ('active', 'expired'):
        raise BusinessLogicError(f"Impossible de renouveler un contrat au statut '{contract.status}'.")
    if not isinstance(months, int) or months < 1:
        raise BusinessLogicError("La durée de renouvellement doit être d'au moins un mois.")

    start = contract.end_date + timedelta(days=1) if contract.end_date else add_months(contract.start_date, months)
    successor = type(contract).objects.create(
        agency=contract.agency,
        property=contract.property,
        owner=contract.owner,
        tenant=contract.tenant,
        contract_type=contract.contract_type,
        start_date=start,
        end_date=add_months(start, months) - timedelta(days=1),
        monthly_rent=monthly_rent if monthly_rent is not None else contract.monthly_rent,
        sale_price=contract.sale_price,
        deposit=contract.deposit,
        charges=contract.charges,
        commission_rate=contract.commission_rate,
        status='active',
        terms=contract.terms,
        created_by=user,
    )

    contract.status = 'renewed'
    contract.save(update_fields=['status', 'updated_at'])

    logger.info(f"Contract {contract.business_id} renewed as {successor.business_id}")
    return successor


# =============================================================================
# INVENTORIES
# =============================================================================

def find_entry_inventory(inventory):
    """
    Entry inspection an exit inspection is compared against: the latest one
    of the same contract, else of the same property and tenant.
    """
    entries = inventory.property.inventories.filter(type='entry', date__lte=inventory.date).exclude(
        pk=inventory.pk
    ).order_by('-date', '-created_at')
    if inventory.contract_id:
        same_contract = entries.filter(contract_id=inventory.contract_id).first()
        if same_contract is not None:
            return same_contract
    return entries.filter(tenant_id=inventory.tenant_id).first()


def compare_inventories(entry, exit):
    """
    Elements whose condition got worse between two inspections.

    Returns:
        list: [{'room', 'element', 'entry', 'exit'}], in exit order
    """
    rank = {condition: position for position, condition in enumerate(INVENTORY_CONDITIONS)}
    before = entry.get_element_conditions()

    degradations = []
    for (room, element), condition in exit.get_element_conditions().items():
        previous = before.get((room, element))
        if previous in rank and condition in rank and rank[condition] > rank[previous]:
            degradations.append({'room': room, 'element': element, 'entry': previous, 'exit': condition})
    return degradations


def sign_inventory(inventory):
    if inventory.status == 'signed':
        raise BusinessLogicError("Cet état des lieux est déjà signé.")
    if not inventory.rooms:
        raise BusinessLogicError("Un état des lieux sans pièce ne peut pas être signé.")

    inventory.status = 'signed'
    inventory.signed_at = timezone.now()
    inventory.save(update_fields=['status', 'signed_at', 'updated_at'])

    logger.info(f"Inventory {inventory.pk} ({inventory.type}) signed for property {inventory.property_id}")
    return inventory
