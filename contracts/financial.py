"""
Financial terms of lease and management contracts.

build_financial_terms() fills the defaults of each contract type:
- bail_habitation: 2 months advance, 2 months deposit, 1 month agency fees
- gestion: 10% commission and a 50 000 F CFA repair threshold

format_financial_terms() turns them into the camelCase strings used by the
template bodies.
"""

import logging
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings

from services.business_logic import format_currency_xof, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_GESTION_COMMISSION_RATE = 0.1
DEFAULT_COMMISSION_TEXT = 'La commission de gestion est fixée à 10% des loyers encaissés.'
DEFAULT_PAYMENT_DAY = '05'
DEFAULT_PAYMENT_TERMS = 'Versement mensuel selon facture'


@dataclass
class ContractFinancialTerms:
    """Amounts in F CFA; commission_rate is a fraction (0.1 = 10%)."""
    monthly_rent: Decimal
    security_deposit: Decimal
    advance_payment: Decimal
    agency_fees: Decimal
    total_due_at_signature: Decimal
    charges: Decimal
    commission_rate: float
    commission_amount: Decimal
    maintenance_threshold: Decimal
    default_commission_text: str
    rent_currency: str = 'XOF'
    payment_day: Optional[str] = None
    payment_terms: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe dict (Decimals as floats)."""
        return {
            key: float(value) if isinstance(value, Decimal) else value
            for key, value in asdict(self).items()
        }


def _get(terms: Dict[str, Any], key: str) -> Any:
    value = terms.get(key)
    return None if value == '' else value


def build_financial_terms(context) -> ContractFinancialTerms:
    """
    Compute the financial terms of a contract from its generation context.

    Values given in context.financial_terms win; the defaults depend on
    context.contract_type.
    """
    terms = dict(context.financial_terms or {})
    contract_type = context.contract_type
    is_bail_habitation = contract_type == 'bail_habitation'
    is_gestion = contract_type == 'gestion'

    rent = to_decimal(_get(terms, 'monthly_rent'))

    def _amount(key: str, habitation_default: Decimal) -> Decimal:
        value = _get(terms, key)
        if value is not None:
            return to_decimal(value)
        return habitation_default if is_bail_habitation else Decimal('0')

    advance = _amount('advance_payment', rent * 2)
    deposit = _amount('security_deposit', rent * 2)
    agency_fees = _amount('agency_fees', rent)

    commission_rate = _get(terms, 'commission_rate')
    if isinstance(commission_rate, (int, float, Decimal)) and not isinstance(commission_rate, bool):
        commission_rate = float(commission_rate)
    else:
        commission_rate = DEFAULT_GESTION_COMMISSION_RATE if is_gestion else 0.0

    commission_amount = _get(terms, 'commission_amount')
    if commission_amount is not None:
        commission_amount = to_decimal(commission_amount)
    elif commission_rate > 0:
        commission_amount = rent * Decimal(str(commission_rate))
    else:
        commission_amount = Decimal('0')

    maintenance_threshold = _get(terms, 'maintenance_threshold')
    if maintenance_threshold is not None:
        maintenance_threshold = to_decimal(maintenance_threshold)
    elif is_gestion:
        maintenance_threshold = Decimal(str(settings.GESTION360.get('MAINTENANCE_THRESHOLD', 50000)))
    else:
        maintenance_threshold = Decimal('0')

    default_commission_text = terms.get('default_commission_text')
    if default_commission_text is None:
        default_commission_text = DEFAULT_COMMISSION_TEXT if is_gestion else ''

    return ContractFinancialTerms(
        monthly_rent=rent,
        security_deposit=deposit,
        advance_payment=advance,
        agency_fees=agency_fees,
        total_due_at_signature=advance + deposit + agency_fees,
        charges=to_decimal(_get(terms, 'charges')),
        commission_rate=commission_rate,
        commission_amount=commission_amount,
        maintenance_threshold=maintenance_threshold,
        default_commission_text=default_commission_text,
        payment_day=_get(terms, 'payment_day'),
        payment_terms=_get(terms, 'payment_terms'),
    )


def format_financial_terms(terms: Optional[ContractFinancialTerms], context=None) -> Optional[Dict[str, Any]]:
    """
    Display values of the financial terms, keyed for template bodies.

    Example:
        monthlyRent -> "150 000 F CFA", commissionRate -> "10%"
    """
    if terms is None:
        return None

    given = dict(getattr(context, 'financial_terms', None) or {})

    if terms.commission_amount and terms.commission_amount > 0:
        commission_amount = format_currency_xof(terms.commission_amount)
    else:
        commission_amount = 'À définir selon les loyers encaissés'

    if terms.total_due_at_signature and terms.total_due_at_signature > 0:
        total_due = format_currency_xof(terms.total_due_at_signature)
    else:
        total_due = 'À définir au moment de la signature'

    return {
        'rentCurrency': terms.rent_currency,
        'charges': float(terms.charges),
        'monthlyRent': format_currency_xof(terms.monthly_rent),
        'advancePayment': format_currency_xof(terms.advance_payment),
        'securityDeposit': format_currency_xof(terms.security_deposit),
        'agencyFees': format_currency_xof(terms.agency_fees),
        'totalDueAtSignature': total_due,
        'commissionAmount': commission_amount,
        'maintenanceThreshold': format_currency_xof(terms.maintenance_threshold),
        'paymentDay': terms.payment_day or given.get('payment_day') or DEFAULT_PAYMENT_DAY,
        'paymentTerms': terms.payment_terms or given.get('payment_terms') or DEFAULT_PAYMENT_TERMS,
        'commissionRate': f"{terms.commission_rate * 100:.0f}%",
        'defaultCommissionText': terms.default_commission_text or '',
    }
