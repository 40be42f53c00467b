"""
Views for the properties app.

This module defines the API viewsets for owners, tenants, properties and
tenant assignments, including filtering, search, and custom actions. Every
queryset is scoped to the agency of the requesting user.
"""

import logging
from datetime import date

from django.db.models import Count
from django.db.models.deletion import ProtectedError
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, filters, status
from rest_framework.decorators import action
from rest_framework.response import Response

from agencies.permissions import AgencyScopedMixin, IsAgencyMember
from gestion360.api import StandardResultsPagination, error_response
from services.geocoding import GeocodingService

from .filters import OwnerFilter, PropertyFilter, PropertyTenantAssignmentFilter, TenantFilter
from .models import Owner, Tenant, Property, PropertyTenantAssignment
from .serializers import (
    OwnerListSerializer,
    OwnerDetailSerializer,
    TenantListSerializer,
    TenantDetailSerializer,
    PropertyListSerializer,
    PropertyDetailSerializer,
    PropertyTenantAssignmentSerializer,
)

logger = logging.getLogger(__name__)


class AgencyRecordViewSet(AgencyScopedMixin, viewsets.ModelViewSet):
    """
    Base viewset for agency records: scoping, creator stamping and
    protected deletes.
    """
    permission_classes = [IsAgencyMember]
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    list_serializer_class = None
    detail_serializer_class = None

    def get_serializer_class(self):
        """
        Use the summary serializer for list views, the detailed one otherwise.
        """
        if self.action == 'list':
            return self.list_serializer_class
        return self.detail_serializer_class

    def perform_create(self, serializer):
        super().perform_create(serializer, created_by=self.request.user)

    def destroy(self, request, *args, **kwargs):
        try:
            return super().destroy(request, *args, **kwargs)
        except ProtectedError as e:
            return error_response(
                "Cet enregistrement est utilisé par d'autres données et ne peut pas être supprimé.",
                details=[str(obj) for obj in e.protected_objects],
                status_code=status.HTTP_409_CONFLICT
            )


# =============================================================================
# OWNER VIEWSET
# =============================================================================

class OwnerViewSet(AgencyRecordViewSet):
    """
    API endpoint for owners.

    Supports:
    - List / create / retrieve / update / delete
    - Filtering by land title, marital status, city
    - Search by name, phone, e-mail, business id
    - Owner's properties via /owners/{id}/properties/
    """
    queryset = Owner.objects.all()
    list_serializer_class = OwnerListSerializer
    detail_serializer_class = OwnerDetailSerializer
    filterset_class = OwnerFilter
    search_fields = ['first_name', 'last_name', 'phone', 'email', 'business_id']
    ordering_fields = ['last_name', 'first_name', 'created_at']
    ordering = ['last_name', 'first_name']

    @action(detail=True, methods=['get'])
    def properties(self, request, pk=None):
        """GET /api/v1/owners/{id}/properties/"""
        owner = self.get_object()
        queryset = owner.properties.select_related('owner')
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(PropertyListSerializer(page, many=True).data)
        return Response(PropertyListSerializer(queryset, many=True).data)


# =============================================================================
# TENANT VIEWSET
# =============================================================================

class TenantViewSet(AgencyRecordViewSet):
    """
    API endpoint for tenants.

    Supports filtering by payment status, marital status and nationality,
    and search by name, phone, e-mail, registration number.
    """
    queryset = Tenant.objects.all()
    list_serializer_class = TenantListSerializer
    detail_serializer_class = TenantDetailSerializer
    filterset_class = TenantFilter
    search_fields = ['first_name', 'last_name', 'phone', 'email', 'registration_number', 'business_id']
    ordering_fields = ['last_name', 'first_name', 'payment_status', 'created_at']
    ordering = ['last_name', 'first_name']


# =============================================================================
# PROPERTY VIEWSET
# =============================================================================

class PropertyViewSet(AgencyRecordViewSet):
    """
    API endpoint for properties.

    Supports:
    - Filtering by owner, commune, quartier, type, standing, usage, rent range
    - Search by title, description, business id
    - Manual geocoding via /properties/{id}/geocode/
    - Availability statistics via /properties/statistics/

    Pagination:
    - Default: 20 results per page
    - Customizable via ?page_size=X parameter (max 1000)
    """
    queryset = Property.objects.select_related('owner')
    list_serializer_class = PropertyListSerializer
    detail_serializer_class = PropertyDetailSerializer
    filterset_class = PropertyFilter
    search_fields = ['title', 'description', 'business_id', 'owner__last_name']
    ordering_fields = ['title', 'monthly_rent', 'created_at', 'updated_at']
    ordering = ['-created_at']

    @action(detail=True, methods=['post'])
    def geocode(self, request, pk=None):
        """
        Geocode the property address and store its coordinates.

        POST /api/v1/properties/{id}/geocode/
        """
        property_obj = self.get_object()
        if not property_obj.get_geocoding_address():
            return error_response("Le bien n'a pas d'adresse à géolocaliser.")

        if not GeocodingService().geocode_property(property_obj):
            return error_response(
                "La géolocalisation a échoué.",
                details={'address': property_obj.get_geocoding_address()},
                status_code=status.HTTP_502_BAD_GATEWAY
            )

        property_obj.refresh_from_db()
        return Response({
            'success': True,
            'coordinates': property_obj.location.get('coordinates'),
        })

    @action(detail=False, methods=['get'])
    def statistics(self, request):
        """
        Property counts for the agency dashboard.

        GET /api/v1/properties/statistics/
        """
        queryset = self.filter_queryset(self.get_queryset())
        total = queryset.count()
        by_standing = dict(
            queryset.values_list('standing').annotate(count=Count('id')).order_by()
        )

        return Response({
            'total': total,
            'available': queryset.filter(is_available=True).count(),
            'for_rent': queryset.filter(for_rent=True).count(),
            'for_sale': queryset.filter(for_sale=True).count(),
            'geocoded': sum(1 for prop in queryset if prop.has_coordinates),
            'by_standing': by_standing,
        })


# =============================================================================
# TENANT ASSIGNMENT VIEWSET
# =============================================================================

class PropertyTenantAssignmentViewSet(AgencyRecordViewSet):
    """
    API endpoint for property occupations.

    Supports filtering by property, tenant, status and ?active_on=YYYY-MM-DD,
    and ending an occupation via /tenant-assignments/{id}/terminate/.
    """
    queryset = PropertyTenantAssignment.objects.select_related('property', 'tenant')
    list_serializer_class = PropertyTenantAssignmentSerializer
    detail_serializer_class = PropertyTenantAssignmentSerializer
    filterset_class = PropertyTenantAssignmentFilter
    search_fields = ['property__title', 'tenant__last_name', 'tenant__first_name']
    ordering_fields = ['lease_start', 'lease_end', 'rent_amount', 'created_at']
    ordering = ['-lease_start']

    def perform_update(self, serializer):
        serializer.save(updated_by=self.request.user)

    @action(detail=True, methods=['post'])
    def terminate(self, request, pk=None):
        """
        POST /api/v1/tenant-assignments/{id}/terminate/ {"lease_end": "2025-06-30"}

        lease_end defaults to today.
        """
        assignment = self.get_object()
        if assignment.status == 'terminated':
            return error_response("Cette occupation est déjà terminée.")

        lease_end = request.data.get('lease_end')
        try:
            lease_end = date.fromisoformat(lease_end) if lease_end else date.today()
        except (TypeError, ValueError):
            return error_response("Date de fin invalide.", details={'lease_end': lease_end})
        if lease_end < assignment.lease_start:
            return error_response("La fin d'occupation doit être postérieure au début.")

        assignment.status = 'terminated'
        assignment.lease_end = lease_end
        assignment.updated_by = request.user
        assignment.save(update_fields=['status', 'lease_end', 'updated_by', 'updated_at'])
        logger.info(f"Tenant assignment {assignment.pk} terminated on {lease_end}")
        return Response(PropertyTenantAssignmentSerializer(assignment).data)
