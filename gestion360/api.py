"""
Shared API building blocks: pagination and error payloads.
"""

from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class StandardResultsPagination(PageNumberPagination):
    """
    Default pagination for every list endpoint.

    Usage:
        GET /api/v1/properties/                → 20 results (default)
        GET /api/v1/properties/?page_size=100  → 100 results
        GET /api/v1/properties/?page_size=1000 → 1000 results (max)
    """
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 1000


def error_response(error, details=None, status_code=status.HTTP_400_BAD_REQUEST):
    """Error payload returned by API views: {'success': False, 'error', 'details'}."""
    return Response(
        {
            'success': False,
            'error': str(error),
            'details': details,
        },
        status=status_code
    )
