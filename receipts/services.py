"""
Rent receipts, owner reversals and account statements.

Key Features:
- Receipt validation with French messages (ReceiptValidationError)
- Commission split between agency and owner
- Sequential receipt numbers REC-YYYYMM-NNNN per agency and period
- Owner reversal (reversement): collected rent minus commission and fees
- Owner and tenant statements stored as FinancialStatement rows
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Sum

from services import ReceiptValidationError
from services.business_logic import (
    coerce_date,
    format_currency_xof,
    format_short_date,
    get_month_name,
    get_payment_method_label,
    iter_months,
    to_decimal,
)

from .models import FinancialStatement, FinancialTransaction, OWNER_FEE_CATEGORIES, RentReceipt

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')
RECEIPT_NUMBER_ATTEMPTS = 5


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class ReceiptAmounts:
    total_amount: Decimal
    commission_amount: Decimal
    owner_payment: Decimal


@dataclass
class OwnerReversal:
    """Amount due to an owner for the rent collected over a period."""
    owner_id: int
    period_start: date
    period_end: date
    total_rent: Decimal
    total_commission: Decimal
    total_fees: Decimal
    net_amount: Decimal
    payments_count: int
    fees: List[Dict[str, Any]] = field(default_factory=list)
    receipts: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'owner_id': self.owner_id,
            'period': {
                'start_date': self.period_start.isoformat(),
                'end_date': self.period_end.isoformat(),
            },
            'total_rent': float(self.total_rent),
            'total_commission': float(self.total_commission),
            'total_fees': float(self.total_fees),
            'net_amount': float(self.net_amount),
            'payments_count': self.payments_count,
            'fees': self.fees,
            'receipts': self.receipts,
        }


# =============================================================================
# RECEIPTS
# =============================================================================

def validate_receipt_input(data: Dict[str, Any]) -> None:
    """
    Check receipt input before any amount is computed.

    Raises:
        ReceiptValidationError: with every error found, keyed by field
    """
    errors = {}

    contract = data.get('contract')
    if contract is None:
        errors['contract'] = "Contrat non trouvé"
    elif contract.contract_type != 'location':
        errors['contract'] = "Seuls les contrats de location donnent lieu à une quittance"

    if to_decimal(data.get('rent_amount')) <= 0:
        errors['rent_amount'] = "Montant du loyer invalide"

    if not data.get('payment_date'):
        errors['payment_date'] = "Veuillez sélectionner une date de paiement"

    month = data.get('period_month')
    try:
        month_valid = 1 <= int(month) <= 12
    except (TypeError, ValueError):
        month_valid = False
    if not month_valid:
        errors['period_month'] = "Le mois doit être compris entre 1 et 12"

    if not data.get('period_year'):
        errors['period_year'] = "L'année est obligatoire"

    if errors:
        raise ReceiptValidationError(errors)


def calculate_receipt_amounts(rent_amount, charges=None, commission_rate=None) -> ReceiptAmounts:
    """
    Split a payment between the agency and the owner.

    commission_rate is a percentage; an empty or zero rate means the
    default agency rate.

    Example:
        calculate_receipt_amounts(100000, 10000, 10)
        -> total 110000.00, commission 11000.00, owner 99000.00
    """
    rate = to_decimal(commission_rate) or Decimal(str(settings.GESTION360.get('DEFAULT_COMMISSION_RATE', 10)))
    total = to_decimal(rent_amount) + to_decimal(charges)
    commission = total * rate / Decimal('100')

    return ReceiptAmounts(
        total_amount=total.quantize(TWO_PLACES, rounding=ROUND_HALF_UP),
        commission_amount=commission.quantize(TWO_PLACES, rounding=ROUND_HALF_UP),
        owner_payment=(total - commission).quantize(TWO_PLACES, rounding=ROUND_HALF_UP),
    )


def generate_receipt_number(period_year: int, period_month: int, agency) -> str:
    """
    Next receipt number of the agency for a period.

    Example:
        third receipt of January 2025 -> "REC-202501-0003"
    """
    prefix = f"REC-{int(period_year):04d}{int(period_month):02d}-"
    numbers = RentReceipt.objects.filter(
        agency=agency, receipt_number__startswith=prefix
    ).values_list('receipt_number', flat=True)

    last = 0
    for number in numbers:
        suffix = number[len(prefix):]
        if suffix.isdigit():
            last = max(last, int(suffix))

    return f"{prefix}{last + 1:04d}"


def issue_rent_receipt(contract, data: Dict[str, Any], user=None) -> RentReceipt:
    """
    Validate, compute and store a rent receipt for a contract.

    data keys: rent_amount, charges, payment_date, period_month,
    period_year, payment_method, notes. The period defaults to the month of
    the payment date.

    Raises:
        ReceiptValidationError: invalid input or period already receipted
    """
    payload = dict(data)
    payload['contract'] = contract

    payment_date = coerce_date(payload.get('payment_date'))
    if payment_date is not None:
        if payload.get('period_month') is None:
            payload['period_month'] = payment_date.month
        if payload.get('period_year') is None:
            payload['period_year'] = payment_date.year

    validate_receipt_input(payload)

    period_month = int(payload['period_month'])
    period_year = int(payload['period_year'])

    if RentReceipt.objects.filter(contract=contract, period_month=period_month, period_year=period_year).exists():
        raise ReceiptValidationError({
            'period': f"Une quittance existe déjà pour {get_month_name(period_month)} {period_year}"
        })

    amounts = calculate_receipt_amounts(
        payload['rent_amount'],
        payload.get('charges'),
        contract.commission_rate,
    )

    for attempt in range(1, RECEIPT_NUMBER_ATTEMPTS + 1):
        receipt_number = generate_receipt_number(period_year, period_month, contract.agency)
        try:
            with transaction.atomic():
                receipt = RentReceipt.objects.create(
                    receipt_number=receipt_number,
                    agency=contract.agency,
                    contract=contract,
                    tenant=contract.tenant,
                    property=contract.property,
                    owner=contract.owner,
                    period_month=period_month,
                    period_year=period_year,
                    rent_amount=to_decimal(payload['rent_amount']),
                    charges=to_decimal(payload.get('charges')),
                    total_amount=amounts.total_amount,
                    commission_amount=amounts.commission_amount,
                    owner_payment=amounts.owner_payment,
                    payment_date=payment_date,
                    payment_method=payload.get('payment_method') or 'especes',
                    notes=payload.get('notes') or '',
                    issued_by=user,
                )
        except IntegrityError:
            if RentReceipt.objects.filter(
                contract=contract, period_month=period_month, period_year=period_year
            ).exists():
                raise ReceiptValidationError({
                    'period': f"Une quittance existe déjà pour {get_month_name(period_month)} {period_year}"
                })
            logger.warning(f"Receipt number {receipt_number} already taken (attempt {attempt})")
            continue

        logger.info(f"Receipt {receipt.receipt_number} issued for contract {contract.business_id}")
        return receipt

    raise ReceiptValidationError({'receipt_number': "Impossible d'attribuer un numéro de quittance"})


def build_receipt_document(receipt: RentReceipt) -> Dict[str, Any]:
    """
    Display payload of a receipt (quittance), with agency branding.
    """
    agency = receipt.agency
    tenant = receipt.tenant
    property_obj = receipt.property

    return {
        'agency': {
            'name': agency.name,
            'address': agency.get_full_address(),
            'phone': agency.phone,
            'email': agency.email,
            'logo_url': agency.logo_url,
        },
        'receipt_number': receipt.receipt_number,
        'period': receipt.get_period_label(),
        'tenant': {
            'name': tenant.get_full_name() if tenant else '',
            'phone': tenant.phone if tenant else '',
        },
        'owner': receipt.owner.get_full_name(),
        'property': {
            'title': property_obj.title,
            'address': property_obj.get_full_address(),
        },
        'amounts': {
            'rent': format_currency_xof(receipt.rent_amount),
            'charges': format_currency_xof(receipt.charges),
            'total': format_currency_xof(receipt.total_amount),
            'commission': format_currency_xof(receipt.commission_amount),
            'owner_payment': format_currency_xof(receipt.owner_payment),
        },
        'amount_in_figures': float(receipt.total_amount),
        'payment_date': format_short_date(receipt.payment_date),
        'payment_method': get_payment_method_label(receipt.payment_method),
        'notes': receipt.notes,
    }


# =============================================================================
# OWNER REVERSAL
# =============================================================================

def _normalize_fee(fee: Dict[str, Any], default_date: date) -> Dict[str, Any]:
    category = fee.get('category') or 'autre'
    if category not in OWNER_FEE_CATEGORIES:
        raise ReceiptValidationError({'fees': f"Catégorie de frais inconnue: {category}"})

    fee_date = coerce_date(fee.get('date')) or default_date
    return {
        'description': fee.get('description') or '',
        'amount': float(to_decimal(fee.get('amount'))),
        'date': fee_date.isoformat(),
        'category': category,
    }


def calculate_owner_reversal(owner, start: date, end: date, fees: Optional[List[Dict[str, Any]]] = None) -> OwnerReversal:
    """
    Compute what the agency owes an owner for rent paid between start and
    end (inclusive).

    net_amount = total_rent - total_commission - total_fees; fees are the
    given ones plus the owner's expense transactions in the period.
    """
    receipts = list(
        RentReceipt.objects.filter(owner=owner, payment_date__gte=start, payment_date__lte=end)
        .order_by('payment_date')
    )

    all_fees = [_normalize_fee(fee, date.today()) for fee in (fees or [])]
    expenses = FinancialTransaction.objects.filter(
        owner=owner, type='expense', category__in=OWNER_FEE_CATEGORIES,
        date__gte=start, date__lte=end,
    ).order_by('date')
    for expense in expenses:
        all_fees.append({
            'description': expense.description,
            'amount': float(expense.amount),
            'date': expense.date.isoformat(),
            'category': expense.category,
        })

    total_rent = sum((receipt.total_amount for receipt in receipts), Decimal('0'))
    total_commission = sum((receipt.commission_amount or Decimal('0') for receipt in receipts), Decimal('0'))
    total_fees = sum((to_decimal(fee['amount']) for fee in all_fees), Decimal('0'))

    return OwnerReversal(
        owner_id=owner.pk,
        period_start=start,
        period_end=end,
        total_rent=total_rent,
        total_commission=total_commission,
        total_fees=total_fees,
        net_amount=total_rent - total_commission - total_fees,
        payments_count=len(receipts),
        fees=all_fees,
        receipts=[
            {
                'receipt_number': receipt.receipt_number,
                'period': receipt.get_period_label(),
                'payment_date': receipt.payment_date.isoformat(),
                'total_amount': float(receipt.total_amount),
                'commission_amount': float(receipt.commission_amount or 0),
            }
            for receipt in receipts
        ],
    )


# =============================================================================
# STATEMENTS
# =============================================================================

def _pending_rent(contracts, start: date, end: date) -> List[Dict[str, Any]]:
    """Months of the period without a receipt, for each rental contract."""
    pending = []
    for contract in contracts:
        paid = set(contract.receipts.values_list('period_year', 'period_month'))
        for year, month in iter_months(start, end):
            if (year, month) in paid or not contract.covers_month(year, month):
                continue
            pending.append({
                'contract_id': contract.pk,
                'period': f"{get_month_name(month)} {year}",
                'year': year,
                'month': month,
                'amount': float(to_decimal(contract.monthly_rent)),
            })
    return pending


def generate_owner_statement(owner, start: date, end: date, user=None) -> FinancialStatement:
    """Store the owner's statement for the period, built from the reversal."""
    from contracts.models import Contract

    reversal = calculate_owner_reversal(owner, start, end)
    contracts = Contract.objects.filter(
        property__owner=owner, contract_type='location', status='active'
    )
    pending = _pending_rent(contracts, start, end)

    lines = [
        {'type': 'income', 'category': 'loyer', 'description': f"Quittance {receipt['receipt_number']}",
         'amount': receipt['total_amount'], 'date': receipt['payment_date']}
        for receipt in reversal.receipts
    ]
    lines += [
        {'type': 'expense', 'category': fee['category'], 'description': fee['description'],
         'amount': fee['amount'], 'date': fee['date']}
        for fee in reversal.fees
    ]

    statement = FinancialStatement.objects.create(
        agency=owner.agency,
        entity_type='owner',
        owner=owner,
        period_start=start,
        period_end=end,
        summary={
            'total_income': float(reversal.total_rent),
            'total_expenses': float(reversal.total_commission + reversal.total_fees),
            'total_commission': float(reversal.total_commission),
            'balance': float(reversal.net_amount),
            'pending_payments': sum(item['amount'] for item in pending),
        },
        transactions=lines,
        generated_by=user,
    )
    logger.info(f"Owner statement {statement.pk} generated for owner {owner.pk}")
    return statement


def generate_tenant_statement(tenant, start: date, end: date, user=None) -> FinancialStatement:
    """
    Store the tenant's statement: receipts paid in the period and the
    months still unpaid on active leases. balance is minus the unpaid rent.
    """
    receipts = RentReceipt.objects.filter(
        tenant=tenant, payment_date__gte=start, payment_date__lte=end
    ).order_by('payment_date')
    total_income = receipts.aggregate(total=Sum('total_amount'))['total'] or Decimal('0')

    pending = _pending_rent(tenant.contracts.filter(contract_type='location', status='active'), start, end)
    pending_total = sum(item['amount'] for item in pending)

    lines = [
        {'type': 'income', 'category': 'loyer', 'description': f"Quittance {receipt.receipt_number}",
         'amount': float(receipt.total_amount), 'date': receipt.payment_date.isoformat()}
        for receipt in receipts
    ]
    lines += [
        {'type': 'pending', 'category': 'loyer', 'description': f"Loyer impayé {item['period']}",
         'amount': item['amount'], 'date': None}
        for item in pending
    ]

    statement = FinancialStatement.objects.create(
        agency=tenant.agency,
        entity_type='tenant',
        tenant=tenant,
        period_start=start,
        period_end=end,
        summary={
            'total_income': float(total_income),
            'total_expenses': 0.0,
            'balance': -pending_total,
            'pending_payments': pending_total,
        },
        transactions=lines,
        generated_by=user,
    )
    logger.info(f"Tenant statement {statement.pk} generated for tenant {tenant.pk}")
    return statement
