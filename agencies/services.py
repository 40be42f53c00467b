"""
Agency Services for the Gestion360 Application.

Platform-console operations on agencies:
- Registration request approval / rejection
- Subscription extension, suspension and reactivation
- Yearly agency rankings (deterministic scores computed from agency data)
- Full agency data export
- Default platform settings
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from services import RegistrationApprovalError, SubscriptionError
from services.business_logic import add_months, iter_months, to_decimal

from .models import (
    Agency,
    AgencyRanking,
    AgencyRegistrationRequest,
    AgencySubscription,
    AgencyUser,
    PlatformSetting,
    SubscriptionPayment,
    is_platform_admin,
)

logger = logging.getLogger(__name__)


# =============================================================================
# PLATFORM SETTINGS
# =============================================================================

DEFAULT_PLATFORM_SETTINGS = [
    # (key, value, category, description)
    ('subscription_basic_price', 25000, 'subscription', 'Tarif mensuel du plan Basic (F CFA)'),
    ('subscription_premium_price', 50000, 'subscription', 'Tarif mensuel du plan Premium (F CFA)'),
    ('subscription_enterprise_price', 100000, 'subscription', 'Tarif mensuel du plan Enterprise (F CFA)'),
    ('trial_days', 30, 'subscription', "Durée de la période d'essai en jours"),
    ('grace_period_days', 7, 'subscription', 'Délai de grâce après échéance en jours'),
    ('evaluation_period_months', 6, 'ranking', "Période d'évaluation des classements en mois"),
    ('auto_generate_rankings', True, 'ranking', 'Génération automatique des classements'),
    ('reward_budget', 1500000, 'ranking', 'Budget annuel des récompenses (F CFA)'),
    ('maintenance_mode', False, 'platform', 'Mode maintenance de la plateforme'),
    ('allow_new_registrations', True, 'platform', "Autoriser les nouvelles demandes d'inscription"),
    ('max_agencies_per_city', 10, 'platform', "Nombre maximum d'agences par ville"),
    ('support_email', 'support@immoplatform.ci', 'platform', 'Adresse e-mail du support'),
]


def seed_default_platform_settings(user=None) -> int:
    """Create missing default settings. Returns the number created."""
    created_count = 0
    for key, value, category, description in DEFAULT_PLATFORM_SETTINGS:
        _, created = PlatformSetting.objects.get_or_create(
            setting_key=key,
            defaults={
                'setting_value': value,
                'category': category,
                'description': description,
                'updated_by': user,
            }
        )
        if created:
            created_count += 1

    logger.info(f"Seeded {created_count} default platform settings")
    return created_count


def get_plan_price(plan_type: str) -> Decimal:
    """Monthly fee of a plan, from platform settings when configured."""
    fallback = {
        'basic': settings.GESTION360['SUBSCRIPTION_MONTHLY_FEE'],
        'premium': 50000,
        'enterprise': 100000,
    }
    value = PlatformSetting.get_value(f'subscription_{plan_type}_price', fallback.get(plan_type, fallback['basic']))
    return to_decimal(value)


# =============================================================================
# REGISTRATION REQUESTS
# =============================================================================

def approve_registration_request(request_id, admin_user) -> Dict[str, Any]:
    """
    Approve a pending agency registration request.

    Creates or updates the agency (keyed by commercial register), makes the
    requesting account its director, and opens the trial subscription.

    Raises:
        RegistrationApprovalError: caller is not an admin, request missing,
            already processed, or without a director account
    """
    if not is_platform_admin(admin_user):
        raise RegistrationApprovalError("Seul un administrateur de la plateforme peut approuver une demande.")

    with transaction.atomic():
        registration = (
            AgencyRegistrationRequest.objects.select_for_update()
            .filter(pk=request_id)
            .first()
        )
        if registration is None:
            raise RegistrationApprovalError("Demande d'inscription introuvable.")
        if not registration.is_pending:
            raise RegistrationApprovalError("Cette demande a déjà été traitée.")

        director = registration.director_auth_user
        if director is None:
            raise RegistrationApprovalError("Aucun compte directeur n'est associé à cette demande.")

        agency, created = Agency.objects.update_or_create(
            commercial_register=registration.commercial_register,
            defaults={
                'name': registration.agency_name,
                'logo_url': registration.logo_url,
                'is_accredited': registration.is_accredited,
                'accreditation_number': registration.accreditation_number,
                'address': registration.address,
                'city': registration.city,
                'phone': registration.phone,
                'email': registration.director_email,
                'legal_representative': f"{registration.director_first_name} {registration.director_last_name}".strip(),
                'director': director,
                'status': 'approved',
            }
        )

        AgencyUser.objects.update_or_create(
            user=director,
            agency=agency,
            defaults={'role': 'director', 'is_active': True}
        )

        # Fill the director's account from the request where it is blank
        updated_fields = []
        for attr, value in (
            ('first_name', registration.director_first_name),
            ('last_name', registration.director_last_name),
            ('email', registration.director_email),
        ):
            if value and not getattr(director, attr, ''):
                setattr(director, attr, value)
                updated_fields.append(attr)
        if updated_fields:
            director.save(update_fields=updated_fields)

        registration.mark_as_approved(admin_user)

        trial_days = int(PlatformSetting.get_value('trial_days', settings.GESTION360['SUBSCRIPTION_TRIAL_DAYS']))
        AgencySubscription.objects.get_or_create(
            agency=agency,
            defaults={
                'plan_type': 'basic',
                'status': 'trial',
                'monthly_fee': get_plan_price('basic'),
                'trial_days_remaining': trial_days,
                'next_payment_date': date.today() + timedelta(days=trial_days),
            }
        )

    logger.info(
        f"Registration request {request_id} approved: agency {agency.pk} "
        f"({'created' if created else 'updated'}), director {director.pk}"
    )
    return {'ok': True, 'agency_id': agency.pk, 'director_id': director.pk}


def reject_registration_request(request_id, admin_user, notes: str = '') -> AgencyRegistrationRequest:
    """Reject a pending registration request with optional admin notes."""
    if not is_platform_admin(admin_user):
        raise RegistrationApprovalError("Seul un administrateur de la plateforme peut rejeter une demande.")

    registration = AgencyRegistrationRequest.objects.filter(pk=request_id).first()
    if registration is None:
        raise RegistrationApprovalError("Demande d'inscription introuvable.")
    if not registration.is_pending:
        raise RegistrationApprovalError("Cette demande a déjà été traitée.")

    registration.mark_as_rejected(admin_user, notes)
    logger.info(f"Registration request {request_id} rejected by {admin_user}")
    return registration


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================

def _get_subscription(agency: Agency) -> AgencySubscription:
    subscription, created = AgencySubscription.objects.get_or_create(
        agency=agency,
        defaults={'monthly_fee': get_plan_price('basic')}
    )
    if created:
        logger.info(f"Created missing subscription for agency {agency.pk}")
    return subscription


def extend_subscription(agency: Agency, months: int, admin_user) -> AgencySubscription:
    """
    Extend an agency subscription by a number of calendar months.

    The next payment date moves forward from its current value (or today),
    the payment is appended to the history and recorded as completed.
    """
    if not is_platform_admin(admin_user):
        raise SubscriptionError("Seul un administrateur de la plateforme peut prolonger un abonnement.")

    try:
        months = int(months)
    except (TypeError, ValueError):
        raise SubscriptionError("Le nombre de mois doit être un entier.")
    if months < 1:
        raise SubscriptionError("Le nombre de mois doit être au moins 1.")

    today = date.today()

    with transaction.atomic():
        subscription = _get_subscription(agency)
        base_date = subscription.next_payment_date or today
        amount = to_decimal(subscription.monthly_fee) * months

        subscription.next_payment_date = add_months(base_date, months)
        subscription.last_payment_date = today
        subscription.status = 'active'
        subscription.payment_history = list(subscription.payment_history or []) + [{
            'date': today.isoformat(),
            'amount': float(amount),
            'months': months,
        }]
        subscription.save()

        SubscriptionPayment.objects.create(
            subscription=subscription,
            amount=amount,
            payment_date=today,
            status='completed',
            processed_by=admin_user,
            notes=f"Prolongation de {months} mois",
        )

    logger.info(f"Subscription of agency {agency.pk} extended by {months} months until {subscription.next_payment_date}")
    return subscription


def suspend_subscription(agency: Agency, reason: str = '') -> AgencySubscription:
    subscription = _get_subscription(agency)
    subscription.status = 'suspended'
    subscription.suspension_reason = reason or ''
    subscription.save(update_fields=['status', 'suspension_reason', 'updated_at'])

    logger.info(f"Subscription of agency {agency.pk} suspended: {reason}")
    return subscription


def activate_subscription(agency: Agency) -> AgencySubscription:
    subscription = _get_subscription(agency)
    subscription.status = 'active'
    subscription.next_payment_date = date.today() + timedelta(days=30)
    subscription.suspension_reason = ''
    subscription.save(update_fields=['status', 'next_payment_date', 'suspension_reason', 'updated_at'])

    logger.info(f"Subscription of agency {agency.pk} activated until {subscription.next_payment_date}")
    return subscription


# =============================================================================
# RANKINGS
# =============================================================================

RANKING_REWARDS = {
    1: [
        {'type': 'cash', 'amount': 500000, 'description': 'Prime de performance'},
        {'type': 'discount', 'percentage': 50, 'duration_months': 3, 'description': "Réduction sur l'abonnement"},
        {'type': 'badge', 'label': "Agence d'Excellence"},
    ],
    2: [
        {'type': 'cash', 'amount': 250000, 'description': 'Prime de performance'},
        {'type': 'discount', 'percentage': 30, 'duration_months': 3, 'description': "Réduction sur l'abonnement"},
        {'type': 'badge', 'label': 'Agence Performante'},
    ],
    3: [
        {'type': 'cash', 'amount': 100000, 'description': 'Prime de performance'},
        {'type': 'discount', 'percentage': 20, 'duration_months': 2, 'description': "Réduction sur l'abonnement"},
        {'type': 'badge', 'label': 'Agence Prometteuse'},
    ],
}


@dataclass
class AgencyScores:
    """Scores (0-100) and the metrics they were computed from."""
    agency: Agency
    volume_score: float
    recovery_rate_score: float
    satisfaction_score: float
    total_score: float
    metrics: Dict[str, Any] = field(default_factory=dict)


def _score(value: float) -> Decimal:
    return Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def _expected_rent_months(contracts, year: int) -> int:
    """Rent-months due in `year` for the given rental contracts."""
    year_start, year_end = date(year, 1, 1), date(year, 12, 31)
    total = 0
    for contract in contracts:
        start = max(contract.start_date, year_start)
        end = min(contract.end_date or year_end, year_end)
        if start <= end:
            total += len(list(iter_months(start, end)))
    return total


def compute_agency_scores(agency: Agency, year: int) -> AgencyScores:
    """
    Compute the ranking scores of one agency for a year.

    volume       = min(properties/50*30, 30) + occupancy*0.4 + min(contracts/40*30, 30)
    recovery     = min(revenue/10M*40, 40) + collection*0.6
    satisfaction = good payers share*60 + min(tenants/30*40, 40)
    total        = 0.40*volume + 0.35*recovery + 0.25*satisfaction
    """
    from properties.models import Property, Tenant
    from contracts.models import Contract
    from receipts.models import RentReceipt

    properties_count = Property.objects.filter(agency=agency).count()
    tenants = Tenant.objects.filter(agency=agency)
    tenants_count = tenants.count()
    good_payers = tenants.filter(payment_status='bon').count()
    contracts_count = Contract.objects.filter(agency=agency).count()

    active_rentals = list(Contract.objects.filter(agency=agency, contract_type='location', status='active'))
    occupancy_rate = min(len(active_rentals) / properties_count * 100, 100) if properties_count else 0.0

    year_receipts = RentReceipt.objects.filter(agency=agency, period_year=year)
    receipts_count = year_receipts.count()
    revenue = float(year_receipts.aggregate(total=Sum('total_amount'))['total'] or 0)

    expected = _expected_rent_months(active_rentals, year)
    collection_rate = min(receipts_count / expected * 100, 100) if expected else 0.0

    volume = (
        min(properties_count / 50 * 30, 30)
        + occupancy_rate * 0.4
        + min(contracts_count / 40 * 30, 30)
    )
    recovery = min(revenue / 10_000_000 * 40, 40) + collection_rate * 0.6
    good_share = good_payers / tenants_count if tenants_count else 0.0
    satisfaction = good_share * 60 + min(tenants_count / 30 * 40, 40)
    total = 0.40 * volume + 0.35 * recovery + 0.25 * satisfaction

    return AgencyScores(
        agency=agency,
        volume_score=volume,
        recovery_rate_score=recovery,
        satisfaction_score=satisfaction,
        total_score=total,
        metrics={
            'total_properties': properties_count,
            'total_tenants': tenants_count,
            'total_contracts': contracts_count,
            'active_rental_contracts': len(active_rentals),
            'occupancy_rate': round(occupancy_rate, 2),
            'receipts_count': receipts_count,
            'expected_rent_months': expected,
            'collection_rate': round(collection_rate, 2),
            'total_revenue': revenue,
            'good_payers': good_payers,
        },
    )


def generate_agency_rankings(year: Optional[int] = None) -> List[AgencyRanking]:
    """
    Rank every approved agency for `year` and store the rankings.

    Ranks are ordered by total score descending, ties broken by agency id.
    The top three agencies receive rewards.
    """
    year = year or timezone.now().year
    agencies = Agency.objects.filter(status='approved').order_by('pk')

    scored = [compute_agency_scores(agency, year) for agency in agencies]
    scored.sort(key=lambda s: (-_score(s.total_score), s.agency.pk))

    rankings = []
    with transaction.atomic():
        for rank, scores in enumerate(scored, start=1):
            ranking, _ = AgencyRanking.objects.update_or_create(
                agency=scores.agency,
                year=year,
                defaults={
                    'rank': rank,
                    'total_score': _score(scores.total_score),
                    'volume_score': _score(scores.volume_score),
                    'recovery_rate_score': _score(scores.recovery_rate_score),
                    'satisfaction_score': _score(scores.satisfaction_score),
                    'metrics': scores.metrics,
                    'rewards': RANKING_REWARDS.get(rank, []),
                }
            )
            rankings.append(ranking)

        # Agencies no longer approved lose their ranking for the year
        AgencyRanking.objects.filter(year=year).exclude(
            agency__in=[scores.agency for scores in scored]
        ).delete()

    logger.info(f"Generated {len(rankings)} agency rankings for {year}")
    return rankings


# =============================================================================
# DATA EXPORT
# =============================================================================

def get_agency_statistics(agency: Agency) -> Dict[str, Any]:
    from properties.models import Owner, Property, Tenant
    from contracts.models import Contract
    from receipts.models import RentReceipt

    contracts = Contract.objects.filter(agency=agency)
    return {
        'total_properties': Property.objects.filter(agency=agency).count(),
        'available_properties': Property.objects.filter(agency=agency, is_available=True).count(),
        'total_owners': Owner.objects.filter(agency=agency).count(),
        'total_tenants': Tenant.objects.filter(agency=agency).count(),
        'total_contracts': contracts.count(),
        'active_contracts': contracts.filter(status='active').count(),
        'total_receipts': RentReceipt.objects.filter(agency=agency).count(),
        'total_collected': float(
            RentReceipt.objects.filter(agency=agency).aggregate(total=Sum('total_amount'))['total'] or 0
        ),
        'total_users': agency.members.filter(is_active=True).count(),
    }


def export_agency_data(agency: Agency) -> Dict[str, Any]:
    """
    Export every record of an agency as a JSON-ready document.

    User accounts are exported without credentials.
    """
    from properties.models import Owner, Property, Tenant
    from contracts.models import Contract

    users = agency.members.select_related('user').values(
        'id', 'role', 'permissions', 'is_active', 'created_at',
        'user__username', 'user__email', 'user__first_name', 'user__last_name',
    )

    document = {
        'exported_at': timezone.now().isoformat(),
        'agency': {
            'id': agency.pk,
            'business_id': agency.business_id,
            'name': agency.name,
            'commercial_register': agency.commercial_register,
            'address': agency.address,
            'city': agency.city,
            'phone': agency.phone,
            'email': agency.email,
            'status': agency.status,
            'created_at': agency.created_at.isoformat() if agency.created_at else None,
        },
        'statistics': get_agency_statistics(agency),
        'data': {
            'properties': list(Property.objects.filter(agency=agency).values()),
            'owners': list(Owner.objects.filter(agency=agency).values()),
            'tenants': list(Tenant.objects.filter(agency=agency).values()),
            'contracts': list(Contract.objects.filter(agency=agency).values()),
            'users': list(users),
        },
    }

    logger.info(f"Exported data of agency {agency.pk}")
    return document
