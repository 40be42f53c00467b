# ===== REQUEST MIDDLEWARE =====
"""
Custom middleware for the Gestion360 API.
Provides request context capture for the audit trail, rate limiting on
sensitive endpoints and the platform maintenance switch.
"""

import logging
import threading
from typing import Optional, Dict, Any

from django.conf import settings
from django.core.cache import cache
from django.http import JsonResponse

logger = logging.getLogger(__name__)

_request_context = threading.local()


def get_client_ip(request) -> str:
    """Get real client IP address."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', 'unknown')


def get_current_request_context() -> Dict[str, Any]:
    """
    Return the user, IP address and user agent of the request being served.

    Signal handlers run outside of the view layer, so the audit log reads the
    request details from here. Outside a request every value is None.
    """
    return {
        'user': getattr(_request_context, 'user', None),
        'ip_address': getattr(_request_context, 'ip_address', None),
        'user_agent': getattr(_request_context, 'user_agent', None),
    }


def set_current_user(user) -> None:
    """Attach the authenticated user once DRF has resolved the JWT."""
    _request_context.user = user


class RequestContextMiddleware:
    """
    Store request metadata in thread-local storage for the audit log.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        _request_context.user = user if user is not None and user.is_authenticated else None
        _request_context.ip_address = get_client_ip(request)
        _request_context.user_agent = request.META.get('HTTP_USER_AGENT', '')[:255]
        try:
            return self.get_response(request)
        finally:
            _request_context.user = None
            _request_context.ip_address = None
            _request_context.user_agent = None


class RateLimitMiddleware:
    """
    Rate limiting middleware for authentication and public endpoints.
    Fixed window counters are kept in the Django cache.
    """

    def __init__(self, get_response):
        self.get_response = get_response

        # Rate limit configurations. `methods` restricts the counted methods,
        # `exact` matches the path itself instead of the prefix.
        self.rate_limits = getattr(settings, 'RATE_LIMITS', {
            # Authentication endpoints
            '/api/v1/auth/': {'requests': 30, 'window': 900, 'methods': ('POST',)},  # 30/15min
            # Public agency registration form: submissions only, not the admin console
            '/api/v1/registration-requests/': {
                'requests': 20, 'window': 3600, 'methods': ('POST',), 'exact': True,
            },
        })

    def __call__(self, request):
        # Check rate limits before processing request
        if not self._check_rate_limit(request):
            return JsonResponse(
                {
                    'error': 'Rate limit exceeded',
                    'message': 'Trop de requêtes. Veuillez réessayer plus tard.',
                    'retry_after': self._get_retry_after(request)
                },
                status=429
            )

        return self.get_response(request)

    def _check_rate_limit(self, request) -> bool:
        """Check if request is within rate limits."""
        endpoint = self._get_endpoint_pattern(request)

        if endpoint is None:
            return True  # No limit configured

        limit_config = self.rate_limits[endpoint]
        cache_key = f"rate_limit:{self._get_user_identifier(request)}:{endpoint}"

        # Get current request count
        current_count = cache.get(cache_key, 0)

        if current_count >= limit_config['requests']:
            logger.warning(f"Rate limit exceeded for {self._get_user_identifier(request)} on {endpoint}")
            return False

        if current_count == 0:
            cache.set(cache_key, 1, limit_config['window'])
        else:
            try:
                cache.incr(cache_key)
            except ValueError:
                # Key expired between get and incr
                cache.set(cache_key, 1, limit_config['window'])
        return True

    def _get_user_identifier(self, request) -> str:
        """Get unique identifier for rate limiting."""
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            return f"user_{user.id}"
        return f"ip_{get_client_ip(request)}"

    def _get_endpoint_pattern(self, request) -> Optional[str]:
        """Match the request to a configured endpoint pattern."""
        for pattern, config in self.rate_limits.items():
            methods = config.get('methods')
            if methods and request.method not in methods:
                continue
            if config.get('exact'):
                if request.path == pattern:
                    return pattern
            elif request.path.startswith(pattern):
                return pattern
        return None

    def _get_retry_after(self, request) -> int:
        """Get retry-after time in seconds."""
        endpoint = self._get_endpoint_pattern(request)
        return self.rate_limits.get(endpoint, {}).get('window', 3600)


class MaintenanceModeMiddleware:
    """
    Answer 503 on API requests while the `maintenance_mode` platform setting
    is enabled. Health, authentication and platform-admin routes stay open.
    """

    EXEMPT_PREFIXES = (
        '/api/v1/health/',
        '/api/v1/info/',
        '/api/v1/auth/',
        '/api/v1/platform-settings/',
        '/admin/',
    )

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.path.startswith('/api/') and not request.path.startswith(self.EXEMPT_PREFIXES):
            if self._maintenance_enabled():
                return JsonResponse(
                    {
                        'error': 'Service unavailable',
                        'message': 'La plateforme est en maintenance. Veuillez réessayer plus tard.',
                    },
                    status=503
                )
        return self.get_response(request)

    def _maintenance_enabled(self) -> bool:
        from agencies.models import PlatformSetting

        return bool(PlatformSetting.get_value('maintenance_mode', False))
