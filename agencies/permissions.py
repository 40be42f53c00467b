"""
Permissions and agency scoping for the Gestion360 API.

Every agency-owned resource is visible only to members of that agency.
Platform admins see every agency.
"""

import logging

from rest_framework import permissions
from rest_framework.exceptions import PermissionDenied

from gestion360.middleware import set_current_user
from .models import get_user_agency_membership, is_platform_admin

logger = logging.getLogger(__name__)


def get_user_agency(user):
    """Agency of the user's active membership, or None."""
    membership = get_user_agency_membership(user)
    return membership.agency if membership else None


# =============================================================================
# PERMISSION CLASSES
# =============================================================================

class IsPlatformAdmin(permissions.BasePermission):
    """Active platform admins only."""

    message = "Accès réservé aux administrateurs de la plateforme."

    def has_permission(self, request, view):
        return is_platform_admin(request.user)


class IsAgencyMember(permissions.BasePermission):
    """Active agency members, or platform admins."""

    message = "Vous devez être rattaché à une agence."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if is_platform_admin(request.user):
            return True
        return get_user_agency_membership(request.user) is not None


class IsAgencyDirectorOrReadOnly(permissions.BasePermission):
    """
    Members may read; only the agency director (or a platform admin) may write.
    """

    message = "Seul le directeur de l'agence peut effectuer cette opération."

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if is_platform_admin(request.user):
            return True

        membership = get_user_agency_membership(request.user)
        if membership is None:
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return membership.role == 'director'


# =============================================================================
# VIEWSET MIXIN
# =============================================================================

class AuditContextMixin:
    """Hand the user authenticated by DRF (JWT) to the audit context."""

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        if request.user and request.user.is_authenticated:
            set_current_user(request.user)


class AgencyScopedMixin(AuditContextMixin):
    """
    Restrict a ModelViewSet to the requesting user's agency.

    - get_queryset() filters on `agency_field`
    - perform_create() stamps the agency of the user
    """

    agency_field = 'agency'

    def is_platform_admin(self):
        return is_platform_admin(self.request.user)

    def get_agency(self):
        return get_user_agency(self.request.user)

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['agency'] = self.get_agency()
        return context

    def get_queryset(self):
        queryset = super().get_queryset()

        if self.is_platform_admin():
            return queryset

        agency = self.get_agency()
        if agency is None:
            return queryset.none()
        return queryset.filter(**{self.agency_field: agency})

    def perform_create(self, serializer, **extra):
        agency = self.get_agency()

        if agency is None:
            if self.is_platform_admin() and serializer.validated_data.get('agency'):
                serializer.save(**extra)
                return
            raise PermissionDenied("Vous devez être rattaché à une agence.")

        serializer.save(agency=agency, **extra)
