"""
Business Logic Services for the Gestion360 Application.

This module implements the shared business rules used across the agency
apps. Everything here is a pure function (or a thin query helper) so views,
signals and management commands can reuse it.

Key Features:
- XOF amount formatting and French date / month labels
- Payment method labels used on receipts and statements
- Business identifiers (TYPE-YYMMDD-NNNNN) and URL slugs
- Agency reference codes (LOC001/BIEN004/PROP002) built from creation order
- Calendar helpers for due dates and subscription periods
"""

import calendar
import logging
import re
import unicodedata
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Iterable, Optional, Any

from . import BusinessLogicError

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES FOR BUSINESS LOGIC
# =============================================================================

@dataclass
class ParsedBusinessId:
    """Components of a TYPE-YYMMDD-NNNNN business identifier."""
    type: str
    prefix: str
    year: int
    month: int
    day: int
    counter: int
    date_key: str
    full_id: str


# =============================================================================
# AMOUNTS AND CURRENCY
# =============================================================================

CURRENCY_SUFFIX = 'F CFA'


def to_decimal(value: Any) -> Decimal:
    """
    Convert user or database input to Decimal.

    None, empty strings and unparsable values count as zero.
    """
    if value is None or value == '':
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        logger.warning(f"Invalid amount value treated as 0: {value!r}")
        return Decimal('0')


def format_amount(value: Any) -> str:
    """
    Format an amount the fr-FR way with no decimals.

    Example:
        1500000 -> "1 500 000"
    """
    amount = to_decimal(value).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return f"{int(amount):,}".replace(',', ' ')


def format_currency_xof(value: Any) -> str:
    """
    Format an amount in CFA francs (XOF has no minor unit).

    Example:
        150000 -> "150 000 F CFA"
    """
    return f"{format_amount(value)} {CURRENCY_SUFFIX}"


# =============================================================================
# FRENCH CALENDAR LABELS
# =============================================================================

FRENCH_MONTHS = [
    'Janvier', 'Février', 'Mars', 'Avril', 'Mai', 'Juin',
    'Juillet', 'Août', 'Septembre', 'Octobre', 'Novembre', 'Décembre',
]


def get_month_name(month: int) -> str:
    """Return the capitalised French month name for 1-12, else ''."""
    try:
        month = int(month)
    except (TypeError, ValueError):
        return ''
    if 1 <= month <= 12:
        return FRENCH_MONTHS[month - 1]
    return ''


def coerce_date(value: Any) -> Optional[date]:
    """Accept a date, datetime or ISO string and return a date (or None)."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning(f"Unparsable date value: {value!r}")
        return None


def format_french_date(value: Any) -> str:
    """
    Format a date as 'dd MMMM yyyy' in French.

    Example:
        date(2025, 1, 5) -> "05 janvier 2025"
    """
    d = coerce_date(value)
    if d is None:
        return ''
    return f"{d.day:02d} {FRENCH_MONTHS[d.month - 1].lower()} {d.year}"


def format_short_date(value: Any) -> str:
    """Format a date as dd/mm/yyyy."""
    d = coerce_date(value)
    if d is None:
        return ''
    return d.strftime('%d/%m/%Y')


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, moving overflowing days to the last day of the month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def add_months(value: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    return clamp_day(year, month, value.day)


def iter_months(start: date, end: date) -> Iterable[tuple]:
    """Yield (year, month) pairs covering start..end inclusive."""
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        yield year, month
        month += 1
        if month > 12:
            year, month = year + 1, 1


# =============================================================================
# PAYMENT METHODS
# =============================================================================

PAYMENT_METHOD_CHOICES = [
    ('especes', 'Espèces'),
    ('cheque', 'Chèque'),
    ('virement', 'Virement bancaire'),
    ('mobile_money', 'Mobile Money'),
    ('bank_transfer', 'Virement bancaire'),
    ('cash', 'Espèces'),
    ('check', 'Chèque'),
]

PAYMENT_METHOD_LABELS = dict(PAYMENT_METHOD_CHOICES)


def get_payment_method_label(method: Optional[str]) -> str:
    """Return the French label of a payment method, or the raw value."""
    if not method:
        return ''
    return PAYMENT_METHOD_LABELS.get(method, method)


# =============================================================================
# BUSINESS IDENTIFIERS
# =============================================================================

BUSINESS_ID_TYPES = {
    'PROP': 'Propriétaire',
    'LOC': 'Locataire',
    'BIEN': 'Bien immobilier',
    'AGEN': 'Agence',
    'CONT': 'Contrat',
    'PAIE': 'Paiement',
    'OCCU': 'Occupation',
}

BUSINESS_ID_PATTERN = re.compile(r'^([A-Z]{3,4})-(\d{6})-(\d{5})$')
BUSINESS_ID_SLUG_PATTERN = re.compile(r'^([A-Z]{3,4}-\d{6}-\d{5})')


def generate_date_key(value: Optional[date] = None) -> str:
    """Date key in YYMMDD format."""
    value = value or date.today()
    return f"{value.year % 100:02d}{value.month:02d}{value.day:02d}"


def format_counter(counter: int) -> str:
    """Zero-pad a daily counter to 5 digits."""
    if counter < 1 or counter > 99999:
        raise BusinessLogicError('Counter must be between 1 and 99999')
    return f"{counter:05d}"


def generate_business_id(id_type: str, counter: int, value: Optional[date] = None) -> str:
    """
    Generate a business identifier.

    Example:
        generate_business_id('PROP', 1, date(2026, 1, 30)) -> "PROP-260130-00001"
    """
    if id_type not in BUSINESS_ID_TYPES:
        raise BusinessLogicError(f'Invalid business ID type: {id_type}')
    return f"{id_type}-{generate_date_key(value)}-{format_counter(counter)}"


def parse_business_id(business_id: str) -> Optional[ParsedBusinessId]:
    """Split a business identifier into its components, or return None."""
    match = BUSINESS_ID_PATTERN.match(business_id or '')
    if not match:
        return None

    prefix, date_key, counter = match.groups()
    if prefix not in BUSINESS_ID_TYPES:
        return None

    return ParsedBusinessId(
        type=prefix,
        prefix=prefix,
        year=2000 + int(date_key[0:2]),
        month=int(date_key[2:4]),
        day=int(date_key[4:6]),
        counter=int(counter),
        date_key=date_key,
        full_id=business_id,
    )


def is_valid_business_id(business_id: str) -> bool:
    return parse_business_id(business_id) is not None


def generate_slug(text: str) -> str:
    """Lowercase ASCII slug, accents stripped, at most 50 characters."""
    normalized = unicodedata.normalize('NFD', (text or '').lower())
    without_accents = ''.join(c for c in normalized if not unicodedata.combining(c))
    slug = re.sub(r'[^a-z0-9]+', '-', without_accents).strip('-')
    return slug[:50]


def generate_url_slug(business_id: str, name: str) -> str:
    """Example: PROP-260130-00001-jean-dupont"""
    return f"{business_id}-{generate_slug(name)}"


def extract_business_id_from_slug(url_slug: str) -> Optional[str]:
    match = BUSINESS_ID_SLUG_PATTERN.match(url_slug or '')
    return match.group(1) if match else None


def next_business_id(model, id_type: str, value: Optional[date] = None) -> str:
    """
    Allocate the next identifier of the day for `model`.

    The counter continues from the highest identifier already stored with
    the same type and date key.
    """
    value = value or date.today()
    prefix = f"{id_type}-{generate_date_key(value)}-"

    last_id = (
        model.objects.filter(business_id__startswith=prefix)
        .order_by('-business_id')
        .values_list('business_id', flat=True)
        .first()
    )
    parsed = parse_business_id(last_id) if last_id else None
    counter = parsed.counter + 1 if parsed else 1

    return generate_business_id(id_type, counter, value)


# =============================================================================
# AGENCY REFERENCE CODES
# =============================================================================

def build_index_map(items: Iterable[Any]) -> Dict[str, int]:
    """
    Number entities by creation order, starting at 1.

    Items may be model instances or dicts exposing `id` and `created_at`.
    Missing dates sort first; ties fall back to the string id.
    """
    def _get(item, attr):
        if isinstance(item, dict):
            return item.get(attr)
        return getattr(item, attr, None)

    def _sort_key(item):
        created_at = _get(item, 'created_at')
        timestamp = created_at.timestamp() if isinstance(created_at, datetime) else 0
        return (timestamp, str(_get(item, 'id')))

    ordered = sorted(items, key=_sort_key)
    return {str(_get(item, 'id')): index for index, item in enumerate(ordered, start=1)}


def _reference_segment(prefix: str, index: Optional[int], entity_id: Any) -> Optional[str]:
    if index:
        return f"{prefix}{index:03d}"
    if entity_id is not None and entity_id != '':
        alnum = re.sub(r'[^a-zA-Z0-9]', '', str(entity_id))[:3].upper()
        return f"{prefix}{alnum or 'XXX'}"
    return None


def compute_reference_code(
    tenant_id: Any = None,
    property_id: Any = None,
    owner_id: Any = None,
    tenants: Optional[Dict[str, int]] = None,
    properties: Optional[Dict[str, int]] = None,
    owners: Optional[Dict[str, int]] = None,
) -> Optional[str]:
    """
    Build the agency reference code "LOC###/BIEN###/PROP###".

    Each segment uses the entity's position in the agency index maps; an
    entity absent from its map falls back to the first three alphanumeric
    characters of its id. Returns None when no entity is given.
    """
    tenants = tenants or {}
    properties = properties or {}
    owners = owners or {}

    segments = [
        _reference_segment('LOC', tenants.get(str(tenant_id)), tenant_id) if tenant_id else None,
        _reference_segment('BIEN', properties.get(str(property_id)), property_id) if property_id else None,
        _reference_segment('PROP', owners.get(str(owner_id)), owner_id) if owner_id else None,
    ]
    segments = [segment for segment in segments if segment]

    return '/'.join(segments) if segments else None
