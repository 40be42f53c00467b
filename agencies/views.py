"""
Views for the agencies app.

API endpoints for the agency profile and the platform console:
agencies, agency users, registration requests, subscriptions, subscription
payments, rankings and platform settings.
"""

import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from gestion360.api import StandardResultsPagination, error_response
from services import RegistrationApprovalError, SubscriptionError

from .filters import AgencyFilter, RankingFilter, RegistrationRequestFilter, SubscriptionFilter
from .models import (
    Agency,
    AgencyRanking,
    AgencyRegistrationRequest,
    AgencySubscription,
    AgencyUser,
    PlatformSetting,
    SubscriptionPayment,
    get_user_agency_membership,
    is_platform_admin,
)
from .permissions import (
    AgencyScopedMixin,
    AuditContextMixin,
    IsAgencyDirectorOrReadOnly,
    IsAgencyMember,
    IsPlatformAdmin,
)
from .serializers import (
    AgencyDetailSerializer,
    AgencyListSerializer,
    AgencyRankingSerializer,
    AgencyRegistrationRequestSerializer,
    AgencySubscriptionSerializer,
    AgencyUserSerializer,
    ExtendSubscriptionSerializer,
    GenerateRankingsSerializer,
    PlatformAdminUserSerializer,
    PlatformSettingSerializer,
    RegistrationDecisionSerializer,
    SubscriptionPaymentSerializer,
    SuspendSubscriptionSerializer,
)
from . import services as agency_services

logger = logging.getLogger(__name__)


class ReadMemberWriteAdmin(permissions.BasePermission):
    """Agency members may read, platform admins may write."""

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return IsAgencyMember().has_permission(request, view)
        return is_platform_admin(request.user)


# =============================================================================
# AGENCY VIEWSET
# =============================================================================

class AgencyViewSet(AuditContextMixin, viewsets.ModelViewSet):
    """
    API endpoint for agencies.

    Members see their own agency; platform admins see every agency.
    Only platform admins create or delete agencies; the director edits the
    agency profile.
    """
    queryset = Agency.objects.select_related('director')
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = AgencyFilter
    search_fields = ['name', 'commercial_register', 'city', 'email', 'business_id']
    ordering_fields = ['name', 'city', 'status', 'created_at']
    ordering = ['name']

    def get_permissions(self):
        if self.action in ('create', 'destroy'):
            return [IsPlatformAdmin()]
        if self.action == 'me':
            return [permissions.IsAuthenticated()]
        return [IsAgencyDirectorOrReadOnly()]

    def get_serializer_class(self):
        if self.action == 'list':
            return AgencyListSerializer
        return AgencyDetailSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        if is_platform_admin(self.request.user):
            return queryset

        membership = get_user_agency_membership(self.request.user)
        if membership is None:
            return queryset.none()
        return queryset.filter(pk=membership.agency_id)

    @action(detail=False, methods=['get'])
    def me(self, request):
        """
        Current user, agency and permissions.

        GET /api/v1/agencies/me/
        """
        membership = get_user_agency_membership(request.user)
        return Response({
            'user': PlatformAdminUserSerializer(request.user).data,
            'is_platform_admin': is_platform_admin(request.user),
            'agency': AgencyDetailSerializer(membership.agency).data if membership else None,
            'role': membership.role if membership else None,
            'permissions': membership.permissions if membership else {},
        })

    @action(detail=True, methods=['get'])
    def stats(self, request, pk=None):
        """GET /api/v1/agencies/{id}/stats/"""
        agency = self.get_object()
        return Response(agency_services.get_agency_statistics(agency))

    @action(detail=True, methods=['get'])
    def export(self, request, pk=None):
        """
        Full JSON export of the agency records (users without credentials).

        GET /api/v1/agencies/{id}/export/
        """
        agency = self.get_object()
        return Response(agency_services.export_agency_data(agency))


# =============================================================================
# AGENCY USERS
# =============================================================================

class AgencyUserViewSet(AgencyScopedMixin, viewsets.ModelViewSet):
    """Agency members, managed by the director."""
    queryset = AgencyUser.objects.select_related('user', 'agency')
    serializer_class = AgencyUserSerializer
    permission_classes = [IsAgencyDirectorOrReadOnly]
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['role', 'is_active']
    search_fields = ['user__username', 'user__email', 'user__first_name', 'user__last_name']
    ordering_fields = ['role', 'created_at']
    ordering = ['role', 'created_at']

    def perform_create(self, serializer):
        agency = self.get_agency()
        user = serializer.validated_data['user']
        if agency and AgencyUser.objects.filter(user=user, agency=agency).exists():
            raise ValidationError({'user': "Cet utilisateur est déjà membre de l'agence."})
        super().perform_create(serializer)


# =============================================================================
# REGISTRATION REQUESTS
# =============================================================================

class AgencyRegistrationRequestViewSet(AuditContextMixin, viewsets.ModelViewSet):
    """
    Agency registration requests.

    Anyone may submit a request; platform admins list, approve and reject.
    """
    queryset = AgencyRegistrationRequest.objects.select_related('director_auth_user', 'processed_by')
    serializer_class = AgencyRegistrationRequestSerializer
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = RegistrationRequestFilter
    search_fields = ['agency_name', 'commercial_register', 'director_email', 'city']
    ordering_fields = ['created_at', 'agency_name', 'status']
    ordering = ['-created_at']

    def get_permissions(self):
        if self.action == 'create':
            return [permissions.AllowAny()]
        return [IsPlatformAdmin()]

    def create(self, request, *args, **kwargs):
        if not PlatformSetting.get_value('allow_new_registrations', True):
            return error_response(
                "Les nouvelles inscriptions sont temporairement fermées.",
                status_code=status.HTTP_403_FORBIDDEN
            )
        return super().create(request, *args, **kwargs)

    def perform_create(self, serializer):
        user = self.request.user
        if user.is_authenticated and not serializer.validated_data.get('director_auth_user'):
            serializer.save(director_auth_user=user)
        else:
            serializer.save()
        logger.info(f"New agency registration request: {serializer.instance.agency_name}")

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        """POST /api/v1/registration-requests/{id}/approve/"""
        registration = self.get_object()
        try:
            result = agency_services.approve_registration_request(registration.pk, request.user)
        except RegistrationApprovalError as e:
            return error_response(e)
        return Response({'success': True, **result})

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        """POST /api/v1/registration-requests/{id}/reject/  {"notes": "..."}"""
        registration = self.get_object()
        decision = RegistrationDecisionSerializer(data=request.data)
        decision.is_valid(raise_exception=True)
        try:
            registration = agency_services.reject_registration_request(
                registration.pk, request.user, decision.validated_data['notes']
            )
        except RegistrationApprovalError as e:
            return error_response(e)
        return Response({'success': True, 'request': self.get_serializer(registration).data})


# =============================================================================
# SUBSCRIPTIONS
# =============================================================================

class AgencySubscriptionViewSet(AgencyScopedMixin, viewsets.ModelViewSet):
    """
    Agency subscriptions. Members read their own; platform admins manage all.
    """
    queryset = AgencySubscription.objects.select_related('agency')
    serializer_class = AgencySubscriptionSerializer
    permission_classes = [ReadMemberWriteAdmin]
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = SubscriptionFilter
    search_fields = ['agency__name']
    ordering_fields = ['next_payment_date', 'status', 'monthly_fee', 'created_at']
    ordering = ['agency__name']

    def perform_create(self, serializer):
        serializer.save()

    @action(detail=True, methods=['post'])
    def extend(self, request, pk=None):
        """POST /api/v1/subscriptions/{id}/extend/  {"months": 3}"""
        subscription = self.get_object()
        payload = ExtendSubscriptionSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            subscription = agency_services.extend_subscription(
                subscription.agency, payload.validated_data['months'], request.user
            )
        except SubscriptionError as e:
            return error_response(e)
        return Response(self.get_serializer(subscription).data)

    @action(detail=True, methods=['post'])
    def suspend(self, request, pk=None):
        """POST /api/v1/subscriptions/{id}/suspend/  {"reason": "..."}"""
        subscription = self.get_object()
        payload = SuspendSubscriptionSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        subscription = agency_services.suspend_subscription(subscription.agency, payload.validated_data['reason'])
        return Response(self.get_serializer(subscription).data)

    @action(detail=True, methods=['post'])
    def activate(self, request, pk=None):
        """POST /api/v1/subscriptions/{id}/activate/"""
        subscription = self.get_object()
        subscription = agency_services.activate_subscription(subscription.agency)
        return Response(self.get_serializer(subscription).data)


class SubscriptionPaymentViewSet(AgencyScopedMixin, viewsets.ModelViewSet):
    queryset = SubscriptionPayment.objects.select_related('subscription__agency', 'processed_by')
    serializer_class = SubscriptionPaymentSerializer
    permission_classes = [ReadMemberWriteAdmin]
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['status', 'payment_method', 'subscription']
    ordering_fields = ['payment_date', 'amount', 'created_at']
    ordering = ['-payment_date']
    agency_field = 'subscription__agency'

    def perform_create(self, serializer):
        serializer.save(processed_by=self.request.user)


# =============================================================================
# RANKINGS
# =============================================================================

class AgencyRankingViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Yearly agency rankings, readable by every authenticated user.
    """
    queryset = AgencyRanking.objects.select_related('agency')
    serializer_class = AgencyRankingSerializer
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = RankingFilter
    ordering_fields = ['year', 'rank', 'total_score']
    ordering = ['-year', 'rank']

    def get_permissions(self):
        if self.action == 'generate':
            return [IsPlatformAdmin()]
        return [permissions.IsAuthenticated()]

    @action(detail=False, methods=['post'])
    def generate(self, request):
        """POST /api/v1/rankings/generate/  {"year": 2025}"""
        payload = GenerateRankingsSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        rankings = agency_services.generate_agency_rankings(payload.validated_data.get('year'))
        return Response(
            {
                'success': True,
                'count': len(rankings),
                'rankings': self.get_serializer(rankings, many=True).data,
            },
            status=status.HTTP_201_CREATED
        )


# =============================================================================
# PLATFORM SETTINGS
# =============================================================================

class PlatformSettingViewSet(AuditContextMixin, viewsets.ModelViewSet):
    """
    Platform configuration. Admins manage every key; other users read the
    public ones.
    """
    queryset = PlatformSetting.objects.all()
    serializer_class = PlatformSettingSerializer
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['category', 'is_public']
    search_fields = ['setting_key', 'description']

    def get_permissions(self):
        if self.action in ('list', 'retrieve'):
            return [permissions.IsAuthenticated()]
        return [IsPlatformAdmin()]

    def get_queryset(self):
        queryset = super().get_queryset()
        if is_platform_admin(self.request.user):
            return queryset
        return queryset.filter(is_public=True)

    def perform_create(self, serializer):
        serializer.save(updated_by=self.request.user)

    def perform_update(self, serializer):
        serializer.save(updated_by=self.request.user)
        logger.info(f"Platform setting {serializer.instance.setting_key} updated by {self.request.user}")

    @action(detail=False, methods=['post'])
    def seed_defaults(self, request):
        """POST /api/v1/platform-settings/seed_defaults/"""
        created = agency_services.seed_default_platform_settings(request.user)
        return Response({'success': True, 'created': created})
