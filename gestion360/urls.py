"""
URL configuration for the Gestion360 project.

Every app exposes a DefaultRouter included under /api/v1/; authentication
uses JWT (simplejwt).
"""

import logging
import sys

from django.conf import settings
from django.contrib import admin
from django.db import connection
from django.http import JsonResponse
from django.urls import path, include
from django.utils import timezone
from django.views.decorators.cache import cache_control
from django.views.decorators.http import require_http_methods
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)

from services import check_service_health

logger = logging.getLogger(__name__)


# =============================================================================
# HEALTH CHECK ENDPOINT
# =============================================================================

@require_http_methods(["GET"])
@cache_control(no_cache=True, must_revalidate=True, no_store=True)
def health_check(request):
    """
    Health check endpoint for deployment monitoring.

    Returns:
        JSON response with system status and database connectivity
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")

        return JsonResponse({
            "status": "healthy",
            "database": "connected",
            "services": check_service_health(),
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}",
            "timestamp": timezone.now().isoformat(),
        }, status=200)

    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return JsonResponse({
            "status": "unhealthy",
            "database": "error",
            "error": str(e) if settings.DEBUG else "Database connection failed",
        }, status=503)


# =============================================================================
# API INFO ENDPOINT
# =============================================================================

@require_http_methods(["GET"])
def api_info(request):
    """
    API information endpoint for frontend integration.

    Returns:
        JSON response with API version and available endpoints
    """
    return JsonResponse({
        "api_name": "Gestion360 Immo API",
        "version": "1.0",
        "description": "Multi-agency real-estate management platform",
        "currency": settings.GESTION360.get('CURRENCY', 'XOF'),
        "endpoints": {
            "authentication": {
                "token_obtain": "/api/v1/auth/token/",
                "token_refresh": "/api/v1/auth/token/refresh/",
                "token_verify": "/api/v1/auth/token/verify/",
            },
            "agencies": {
                "agencies": "/api/v1/agencies/",
                "my_agency": "/api/v1/agencies/me/",
                "agency_users": "/api/v1/agency-users/",
                "registration_requests": "/api/v1/registration-requests/",
                "subscriptions": "/api/v1/subscriptions/",
                "subscription_payments": "/api/v1/subscription-payments/",
                "rankings": "/api/v1/rankings/",
                "platform_settings": "/api/v1/platform-settings/",
            },
            "records": {
                "owners": "/api/v1/owners/",
                "tenants": "/api/v1/tenants/",
                "properties": "/api/v1/properties/",
                "tenant_assignments": "/api/v1/tenant-assignments/",
            },
            "contracts": {
                "contracts": "/api/v1/contracts/",
                "generate_document": "/api/v1/contracts/{id}/generate_document/",
                "templates": "/api/v1/contract-templates/",
                "inventories": "/api/v1/inventories/",
            },
            "finance": {
                "receipts": "/api/v1/receipts/",
                "transactions": "/api/v1/transactions/",
                "statements": "/api/v1/statements/",
            },
            "notifications": {
                "notifications": "/api/v1/notifications/",
                "notification_settings": "/api/v1/notifications/settings/",
                "email_notifications": "/api/v1/email-notifications/",
                "audit_logs": "/api/v1/audit-logs/",
            },
            "collaboration": {
                "announcements": "/api/v1/announcements/",
                "announcement_interests": "/api/v1/announcement-interests/",
                "messages": "/api/v1/messages/",
            },
            "utilities": {
                "health": "/api/v1/health/",
            },
        },
    })


# =============================================================================
# MAIN URL PATTERNS
# =============================================================================

urlpatterns = [
    # Django Admin Interface
    path('admin/', admin.site.urls),

    # Health and System Status
    path('api/v1/health/', health_check, name='health-check'),
    path('api/v1/info/', api_info, name='api-info'),

    # Authentication Endpoints (JWT)
    path('api/v1/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/v1/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/v1/auth/token/verify/', TokenVerifyView.as_view(), name='token_verify'),

    # Core Application Endpoints
    path('api/v1/', include('agencies.urls')),
    path('api/v1/', include('properties.urls')),
    path('api/v1/', include('contracts.urls')),
    path('api/v1/', include('receipts.urls')),
    path('api/v1/', include('notifications.urls')),
    path('api/v1/', include('collaboration.urls')),

    path('api/', api_info, name='api-default'),
]


# =============================================================================
# DEVELOPMENT URL PATTERNS
# =============================================================================

if settings.DEBUG:
    urlpatterns += [
        # Django REST Framework browsable API login
        path('api-auth/', include('rest_framework.urls')),
    ]


# =============================================================================
# CUSTOM ERROR HANDLERS
# =============================================================================

def custom_404_handler(request, exception):
    """Custom 404 handler for API endpoints"""
    if request.path.startswith('/api/'):
        return JsonResponse({
            'success': False,
            'error': 'API endpoint not found',
            'details': f'The requested endpoint {request.path} does not exist',
        }, status=404)

    from django.views.defaults import page_not_found
    return page_not_found(request, exception)


def custom_500_handler(request):
    """Custom 500 handler for API endpoints"""
    if request.path.startswith('/api/'):
        return JsonResponse({
            'success': False,
            'error': 'Internal server error',
            'details': 'An unexpected error occurred',
        }, status=500)

    from django.views.defaults import server_error
    return server_error(request)


handler404 = custom_404_handler
handler500 = custom_500_handler
