# ===== SERVICES INTEGRATION LAYER =====
"""
Centralized service integration layer for the Gestion360 backend.
Provides the shared exception hierarchy and error-tolerant wrappers used by
signals, management commands and views.
"""

import logging
from typing import Optional, Dict, Any, Tuple

from django.conf import settings

logger = logging.getLogger(__name__)


# =============================================================================
# SERVICE INTEGRATION EXCEPTIONS
# =============================================================================

class ServiceIntegrationError(Exception):
    """Base exception for service integration errors."""
    pass


class BusinessLogicError(ServiceIntegrationError):
    """Raised when business logic calculations fail."""
    pass


class TemplateRenderingError(BusinessLogicError):
    """Raised when a contract document cannot be produced."""
    pass


class ReceiptValidationError(BusinessLogicError):
    """
    Raised when rent receipt input is invalid.

    `errors` maps field names to French messages so views can return them
    as-is to the client.
    """

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__('; '.join(errors.values()))


class SubscriptionError(BusinessLogicError):
    """Raised when a subscription operation is not allowed."""
    pass


class RegistrationApprovalError(BusinessLogicError):
    """Raised when an agency registration request cannot be approved."""
    pass


# =============================================================================
# BUSINESS LOGIC SERVICE INTEGRATION
# =============================================================================

def safe_reference_code(contract) -> Optional[str]:
    """
    Compute the agency reference code of a contract (LOC001/BIEN002/PROP001).

    Returns None when the code cannot be computed.
    """
    from contracts.services import get_contract_reference_code

    try:
        return get_contract_reference_code(contract)
    except Exception as e:
        logger.warning(f"Reference code computation failed for contract {contract.pk}: {str(e)}")
        return None


def safe_next_business_id(model, id_type: str) -> Optional[str]:
    """
    Allocate the next business identifier (TYPE-YYMMDD-NNNNN) for a model.

    Returns None when the daily counter is exhausted so the row can still
    be saved without an identifier.
    """
    from .business_logic import next_business_id

    try:
        return next_business_id(model, id_type)
    except BusinessLogicError as e:
        logger.error(f"Business ID allocation failed for {model.__name__}: {str(e)}")
        return None


# =============================================================================
# HEALTH CHECK SERVICES
# =============================================================================

def check_service_health() -> Dict[str, Dict[str, Any]]:
    """
    Check health of all integrated services.

    Returns:
        Dictionary with health status of each service
    """
    from django.core.mail import get_connection

    health_status = {
        'geocoding': {
            'available': True,
            'api_key_configured': bool(getattr(settings, 'GOOGLE_MAPS_API_KEY', None)),
        },
        'email': {
            'available': True,
            'backend': settings.EMAIL_BACKEND,
        },
    }

    try:
        get_connection()
    except Exception as e:
        health_status['email'] = {'available': False, 'error': str(e)}

    return health_status


def validate_service_configuration() -> Tuple[bool, list]:
    """
    Validate that all required services are properly configured.

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    if not getattr(settings, 'GOOGLE_MAPS_API_KEY', None):
        errors.append("GOOGLE_MAPS_API_KEY not configured in settings")

    if not getattr(settings, 'DATABASES', {}).get('default'):
        errors.append("Database configuration missing")

    domain_settings = getattr(settings, 'GESTION360', {})
    for key in ('CURRENCY', 'DEFAULT_COMMISSION_RATE', 'REMINDER_DAYS_BEFORE'):
        if key not in domain_settings:
            errors.append(f"GESTION360['{key}'] not configured")

    return len(errors) == 0, errors


# =============================================================================
# EXPORT FOR EASY IMPORTS
# =============================================================================

__all__ = [
    'safe_reference_code',
    'safe_next_business_id',
    'check_service_health',
    'validate_service_configuration',
    'ServiceIntegrationError',
    'BusinessLogicError',
    'TemplateRenderingError',
    'ReceiptValidationError',
    'SubscriptionError',
    'RegistrationApprovalError',
]
