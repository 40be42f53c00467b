"""
Views for the collaboration app.

- /announcements/            platform-wide announcements (own agency: all
                             states; other agencies: visible ones only)
- /announcement-interests/   interests sent by or received by the agency
- /messages/                 the requesting user's sent and received messages
"""

import logging

from django.db.models import Q
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from agencies.models import is_platform_admin
from agencies.permissions import AuditContextMixin, IsAgencyMember, get_user_agency
from gestion360.api import StandardResultsPagination, error_response
from services import BusinessLogicError

from .filters import AnnouncementFilter, AnnouncementInterestFilter, MessageFilter
from .models import Announcement, AnnouncementInterest, Message
from .serializers import (
    AnnouncementInterestSerializer,
    AnnouncementSerializer,
    ExpressInterestSerializer,
    MessageSerializer,
)
from . import services as collaboration_services

logger = logging.getLogger(__name__)


class CollaborationViewMixin(AuditContextMixin):
    permission_classes = [IsAgencyMember]
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]

    def get_agency(self):
        return get_user_agency(self.request.user)

    def is_platform_admin(self):
        return is_platform_admin(self.request.user)

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['agency'] = self.get_agency()
        return context


# =============================================================================
# ANNOUNCEMENT VIEWSET
# =============================================================================

class AnnouncementViewSet(CollaborationViewMixin, viewsets.ModelViewSet):
    """
    API endpoint for announcements.

    Supports:
    - Filtering by type, agency, property, commune and ?mine=true|false
    - Search by title and description
    - POST {id}/interest/ for other agencies, GET {id}/interests/ for the
      publishing agency
    """
    serializer_class = AnnouncementSerializer
    filterset_class = AnnouncementFilter
    search_fields = ['title', 'description', 'property__title']
    ordering_fields = ['created_at', 'views', 'expires_at']
    ordering = ['-created_at']

    def get_queryset(self):
        queryset = Announcement.objects.select_related('agency', 'property')
        if self.is_platform_admin():
            return queryset

        now = timezone.now()
        visible = Q(is_active=True) & (Q(expires_at__isnull=True) | Q(expires_at__gt=now))
        agency = self.get_agency()
        if agency is None:
            return queryset.filter(visible)
        return queryset.filter(visible | Q(agency=agency))

    def _check_publisher(self, announcement):
        if self.is_platform_admin():
            return
        agency = self.get_agency()
        if agency is None or announcement.agency_id != agency.pk:
            raise PermissionDenied("Seule l'agence qui a publié l'annonce peut la modifier.")

    def perform_create(self, serializer):
        agency = self.get_agency()
        if agency is None:
            raise PermissionDenied("Vous devez être rattaché à une agence.")
        serializer.save(agency=agency, created_by=self.request.user)

    def perform_update(self, serializer):
        self._check_publisher(serializer.instance)
        serializer.save()

    def perform_destroy(self, instance):
        self._check_publisher(instance)
        instance.delete()

    def retrieve(self, request, *args, **kwargs):
        announcement = self.get_object()
        agency = self.get_agency()
        if agency is not None and announcement.agency_id != agency.pk:
            collaboration_services.register_view(announcement)
        return Response(self.get_serializer(announcement).data)

    @action(detail=True, methods=['post'])
    def interest(self, request, pk=None):
        """
        Express the interest of the requesting user's agency.

        POST /api/v1/announcements/{id}/interest/ {"message": "..."}
        """
        announcement = self.get_object()
        payload = ExpressInterestSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        try:
            interest = collaboration_services.express_interest(
                announcement,
                request.user,
                self.get_agency(),
                payload.validated_data.get('message'),
            )
        except BusinessLogicError as e:
            return error_response(e)

        return Response(AnnouncementInterestSerializer(interest).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'])
    def interests(self, request, pk=None):
        """GET /api/v1/announcements/{id}/interests/ (publishing agency only)"""
        announcement = self.get_object()
        self._check_publisher(announcement)
        queryset = announcement.interests.select_related('agency', 'user')
        return Response(AnnouncementInterestSerializer(queryset, many=True).data)


# =============================================================================
# INTEREST VIEWSET
# =============================================================================

class AnnouncementInterestViewSet(CollaborationViewMixin,
                                  mixins.ListModelMixin,
                                  mixins.RetrieveModelMixin,
                                  mixins.DestroyModelMixin,
                                  viewsets.GenericViewSet):
    """
    Interests sent or received by the agency.

    The publishing agency approves or rejects; the interested agency may
    withdraw a pending interest.
    """
    serializer_class = AnnouncementInterestSerializer
    filterset_class = AnnouncementInterestFilter
    search_fields = ['announcement__title', 'agency__name']
    ordering = ['-created_at']

    def get_queryset(self):
        queryset = AnnouncementInterest.objects.select_related('announcement__agency', 'agency', 'user')
        if self.is_platform_admin():
            return queryset

        agency = self.get_agency()
        if agency is None:
            return queryset.none()
        return queryset.filter(Q(agency=agency) | Q(announcement__agency=agency))

    def _review(self, status_value):
        interest = self.get_object()
        agency = self.get_agency()
        if not self.is_platform_admin() and (agency is None or interest.announcement.agency_id != agency.pk):
            raise PermissionDenied("Seule l'agence qui a publié l'annonce peut répondre.")

        try:
            collaboration_services.review_interest(interest, status_value)
        except BusinessLogicError as e:
            return error_response(e)
        return Response(self.get_serializer(interest).data)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        return self._review('approved')

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        return self._review('rejected')

    def perform_destroy(self, instance):
        agency = self.get_agency()
        if agency is None or instance.agency_id != agency.pk:
            raise PermissionDenied("Seule l'agence intéressée peut retirer sa demande.")
        if instance.status != 'pending':
            raise PermissionDenied("Une demande traitée ne peut plus être retirée.")
        instance.delete()


# =============================================================================
# MESSAGE VIEWSET
# =============================================================================

class MessageViewSet(CollaborationViewMixin,
                     mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     mixins.CreateModelMixin,
                     mixins.DestroyModelMixin,
                     viewsets.GenericViewSet):
    """
    Messages sent or received by the requesting user.

    Supports ?box=inbox|sent, ?is_read, POST {id}/mark_read/ (receiver)
    and GET unread_count/.
    """
    serializer_class = MessageSerializer
    filterset_class = MessageFilter
    search_fields = ['subject', 'content']
    ordering = ['-created_at']

    def get_queryset(self):
        user = self.request.user
        return Message.objects.filter(Q(sender=user) | Q(receiver=user)).select_related('sender', 'receiver')

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            message = collaboration_services.send_message(
                request.user,
                data['receiver'],
                data['subject'],
                data['content'],
                agency=self.get_agency(),
                property=data.get('property'),
                announcement=data.get('announcement'),
                attachments=data.get('attachments'),
            )
        except BusinessLogicError as e:
            return error_response(e)

        return Response(self.get_serializer(message).data, status=status.HTTP_201_CREATED)

    def perform_destroy(self, instance):
        if instance.sender_id != self.request.user.pk:
            raise PermissionDenied("Seul l'expéditeur peut supprimer un message.")
        instance.delete()

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):
        message = self.get_object()
        if message.receiver_id != request.user.pk:
            raise PermissionDenied("Seul le destinataire peut marquer un message comme lu.")
        message.mark_as_read()
        return Response(self.get_serializer(message).data)

    @action(detail=False, methods=['get'])
    def unread_count(self, request):
        count = Message.objects.filter(receiver=request.user, is_read=False).count()
        return Response({'count': count})
