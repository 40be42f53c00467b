"""
Contract document generation.

Picks the template for a contract (agency template, platform template or
built-in definition), builds the render context and returns the rendered
HTML with its financial terms.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db.models import Case, IntegerField, Q, Value, When

from services import TemplateRenderingError
from services.business_logic import format_french_date, to_decimal

from .financial import ContractFinancialTerms, build_financial_terms, format_financial_terms
from .models import ContractTemplate
from .templating import get_default_definition, render_template_body

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class ContractGenerationContext:
    """
    Everything a contract document needs.

    agency, owner, tenant and property are plain dicts (see the *_snapshot
    helpers below); financial_terms uses snake_case keys of
    ContractFinancialTerms.
    """
    contract_type: str
    agency: Dict[str, Any]
    effective_date: Any = None
    owner: Optional[Dict[str, Any]] = None
    tenant: Optional[Dict[str, Any]] = None
    property: Optional[Dict[str, Any]] = None
    end_date: Any = None
    financial_terms: Dict[str, Any] = field(default_factory=dict)
    usage_type: Optional[str] = None
    renewal_notice_months: Optional[int] = None
    location_jurisdiction: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


@dataclass
class RenderedContract:
    template_id: Optional[int]
    contract_type: str
    usage_type: Optional[str]
    title: str
    html: str
    variables: List[str]
    financial_terms: Optional[ContractFinancialTerms]
    metadata: Optional[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation, stored in Contract.documents."""
        return {
            'template_id': self.template_id,
            'contract_type': self.contract_type,
            'usage_type': self.usage_type,
            'title': self.title,
            'html': self.html,
            'variables': list(self.variables or []),
            'financial_terms': self.financial_terms.to_dict() if self.financial_terms else None,
            'metadata': self.metadata,
        }


# =============================================================================
# RENDER CONTEXT
# =============================================================================

def agency_snapshot(agency) -> Dict[str, Any]:
    return {
        'id': agency.pk,
        'name': agency.name,
        'address': agency.address,
        'city': agency.city,
        'phone': agency.phone,
        'email': agency.email,
        'logo_url': agency.logo_url,
        'registration_number': agency.commercial_register,
        'legal_representative': agency.get_representative_name(),
    }


def person_snapshot(person) -> Optional[Dict[str, Any]]:
    if person is None:
        return None
    return {
        'id': person.pk,
        'first_name': person.first_name,
        'last_name': person.last_name,
        'address': person.address,
        'registration_number': getattr(person, 'registration_number', ''),
    }


def property_snapshot(property_obj) -> Optional[Dict[str, Any]]:
    if property_obj is None:
        return None
    return {
        'id': property_obj.pk,
        'title': property_obj.title,
        'type': property_obj.get_property_type(),
        'location': dict(property_obj.location or {}),
        'usage_type': property_obj.usage_type,
    }


def _full_name(person: Optional[Dict[str, Any]]) -> str:
    if not person:
        return ''
    return f"{person.get('first_name') or ''} {person.get('last_name') or ''}".strip()


def build_template_render_context(
    context: ContractGenerationContext,
    contract_type: str,
    formatted_financial: Optional[Dict[str, Any]],
    dates: Dict[str, str],
) -> Dict[str, Any]:
    """
    Nested dict the template bodies are rendered against.

    Top-level keys: agency, owner, tenant, property, dates, financial,
    jurisdiction.
    """
    agency = context.agency or {}
    owner = context.owner or {}
    tenant = context.tenant or {}
    property_data = context.property or {}
    location = property_data.get('location') or {}

    if context.renewal_notice_months is not None:
        renewal_notice_months = context.renewal_notice_months
    else:
        renewal_notice_months = 6 if contract_type == 'bail_professionnel' else 3

    return {
        'agency': {
            'name': agency.get('name') or '',
            'fullAddress': agency.get('address') or agency.get('city') or '',
            'phone': agency.get('phone') or '',
            'email': agency.get('email') or '',
            'logoUrl': agency.get('logo_url') or '',
            'registrationNumber': agency.get('registration_number') or '',
            'representativeName': agency.get('legal_representative') or '',
        },
        'owner': {
            'fullName': _full_name(context.owner),
            'address': owner.get('address') or '',
        },
        'tenant': {
            'fullName': _full_name(context.tenant),
            'address': tenant.get('address') or '',
            'registrationNumber': tenant.get('registration_number') or '',
        },
        'property': {
            'description': property_data.get('title') or property_data.get('type') or '',
            'fullAddress': (
                f"{location.get('address_line') or ''} {location.get('commune') or ''}".strip()
                if context.property else ''
            ),
            'usageLabel': 'professionnel' if property_data.get('usage_type') == 'professionnel' else 'commercial',
        },
        'dates': {
            'effectiveDate': dates.get('effectiveDate', ''),
            'endDate': dates.get('endDate', ''),
            'generatedOn': dates.get('generatedOn', ''),
            'renewalNoticeMonths': renewal_notice_months,
        },
        'financial': formatted_financial,
        'jurisdiction': context.location_jurisdiction or settings.GESTION360.get('DEFAULT_JURISDICTION', 'Abidjan'),
    }


def _render(body: str, contract_type: str, context: ContractGenerationContext):
    financial = build_financial_terms(context)
    dates = {
        'effectiveDate': format_french_date(context.effective_date),
        'endDate': format_french_date(context.end_date),
        'generatedOn': format_french_date(date.today()),
    }
    render_context = build_template_render_context(
        context,
        contract_type,
        format_financial_terms(financial, context),
        dates,
    )
    return render_template_body(body, render_context), financial


# =============================================================================
# TEMPLATE SELECTION
# =============================================================================

def select_template(contract_type: str, usage: Optional[str] = None, agency=None,
                    template_id=None) -> Optional[ContractTemplate]:
    """
    Template to use for a contract, or None to fall back to the built-in one.

    An explicit template_id must be active and visible to the agency (its
    own or platform-wide). Otherwise the latest active template of the type
    with exactly this usage wins, agency templates first. A template without
    usage only matches when no usage is given.
    """
    visible = Q(agency__isnull=True)
    if agency is not None:
        visible |= Q(agency=agency)

    queryset = ContractTemplate.objects.filter(visible, is_active=True)

    if template_id:
        return queryset.filter(pk=template_id).first()

    queryset = queryset.filter(contract_type=contract_type)
    if usage:
        queryset = queryset.filter(usage_type=usage)
    else:
        queryset = queryset.filter(usage_type__isnull=True)

    return queryset.annotate(
        agency_rank=Case(When(agency__isnull=True, then=Value(1)), default=Value(0), output_field=IntegerField()),
    ).order_by('agency_rank', '-version', '-created_at').first()


# =============================================================================
# GENERATION
# =============================================================================

def compile_template(template: ContractTemplate, context: ContractGenerationContext) -> RenderedContract:
    html, financial = _render(template.body, template.contract_type, context)
    return RenderedContract(
        template_id=template.pk,
        contract_type=template.contract_type,
        usage_type=template.usage_type,
        title=template.name,
        html=html,
        variables=template.variables or [],
        financial_terms=financial,
        metadata=template.metadata or None,
    )


def render_default_template(template_type: str, context: ContractGenerationContext) -> RenderedContract:
    definition = get_default_definition(template_type)
    if definition is None:
        raise TemplateRenderingError(f"Template {template_type} non reconnu")

    html, financial = _render(definition.body, definition.key, context)
    return RenderedContract(
        template_id=None,
        contract_type=definition.key,
        usage_type=definition.usage,
        title=definition.name,
        html=html,
        variables=list(definition.variables),
        financial_terms=financial,
        metadata=context.metadata,
    )


def generate_contract_document(context: ContractGenerationContext, template_id=None,
                               agency=None) -> RenderedContract:
    """
    Render the contract document for a generation context.

    Raises:
        TemplateRenderingError: when no stored template applies and the
            contract type has no built-in definition
    """
    usage = context.usage_type or (context.property or {}).get('usage_type')
    template = select_template(context.contract_type, usage, agency, template_id)

    if template is not None and template.body:
        logger.info(f"Rendering contract with template {template.pk} ({template.contract_type} v{template.version})")
        return compile_template(template, context)

    if template_id:
        logger.warning(f"Template {template_id} unavailable, using built-in {context.contract_type} template")
    return render_default_template(context.contract_type, context)


def build_generation_context(contract, overrides: Optional[Dict[str, Any]] = None) -> ContractGenerationContext:
    """
    Generation context of a Contract row.

    overrides may set effective_date, end_date, usage_type,
    renewal_notice_months, location_jurisdiction, metadata and
    financial_terms (merged over the terms taken from the contract).

    Raises:
        TemplateRenderingError: for contract types without a document (vente)
    """
    overrides = dict(overrides or {})
    template_type = contract.get_template_type()
    if template_type is None:
        raise TemplateRenderingError(f"Template {contract.contract_type} non reconnu")

    financial_terms = {
        'monthly_rent': float(to_decimal(contract.monthly_rent)),
        'charges': float(to_decimal(contract.charges)),
    }
    if contract.deposit is not None:
        financial_terms['security_deposit'] = float(contract.deposit)
    if template_type == 'gestion':
        financial_terms['commission_rate'] = float(to_decimal(contract.commission_rate)) / 100
        if contract.commission_amount is not None:
            financial_terms['commission_amount'] = float(contract.commission_amount)
    financial_terms.update(overrides.get('financial_terms') or {})

    return ContractGenerationContext(
        contract_type=template_type,
        agency=agency_snapshot(contract.agency),
        owner=person_snapshot(contract.owner),
        tenant=person_snapshot(contract.tenant),
        property=property_snapshot(contract.property),
        effective_date=overrides.get('effective_date') or contract.start_date,
        end_date=overrides.get('end_date') or contract.end_date,
        financial_terms=financial_terms,
        usage_type=overrides.get('usage_type') or contract.property.usage_type,
        renewal_notice_months=overrides.get('renewal_notice_months'),
        location_jurisdiction=overrides.get('location_jurisdiction'),
        metadata=overrides.get('metadata') or {'contract_id': contract.pk, 'business_id': contract.business_id},
    )
