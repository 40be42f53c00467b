"""
Views for the receipts app.

Rent receipts (issued through the service layer so numbering, commission
and notifications stay consistent), financial transactions and statements.
"""

import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from agencies.permissions import AgencyScopedMixin, IsAgencyMember
from gestion360.api import StandardResultsPagination, error_response
from properties.models import Owner, Tenant
from services import ReceiptValidationError

from .filters import FinancialStatementFilter, FinancialTransactionFilter, RentReceiptFilter
from .models import FinancialStatement, FinancialTransaction, RentReceipt
from .serializers import (
    FinancialStatementSerializer,
    FinancialTransactionSerializer,
    IssueReceiptSerializer,
    RentReceiptSerializer,
    StatementPeriodSerializer,
)
from . import services as receipt_services

logger = logging.getLogger(__name__)


# =============================================================================
# RENT RECEIPT VIEWSET
# =============================================================================

class RentReceiptViewSet(AgencyScopedMixin,
                         mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         mixins.DestroyModelMixin,
                         viewsets.GenericViewSet):
    """
    API endpoint for rent receipts.

    POST /api/v1/receipts/ issues a receipt for a rental contract:
        {"contract": 12, "rent_amount": 150000, "charges": 10000,
         "payment_date": "2025-01-05", "payment_method": "mobile_money"}

    Receipts are not editable once issued.
    """
    queryset = RentReceipt.objects.select_related('agency', 'tenant', 'property', 'owner', 'contract')
    serializer_class = RentReceiptSerializer
    permission_classes = [IsAgencyMember]
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = RentReceiptFilter
    search_fields = ['receipt_number', 'tenant__last_name', 'property__title']
    ordering_fields = ['payment_date', 'period_year', 'period_month', 'total_amount', 'created_at']
    ordering = ['-payment_date']

    def create(self, request, *args, **kwargs):
        payload = IssueReceiptSerializer(data=request.data, context=self.get_serializer_context())
        payload.is_valid(raise_exception=True)

        data = dict(payload.validated_data)
        contract = data.pop('contract', None)

        try:
            receipt = receipt_services.issue_rent_receipt(contract, data, user=request.user)
        except ReceiptValidationError as e:
            return error_response(e, details=e.errors)

        return Response(self.get_serializer(receipt).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'])
    def document(self, request, pk=None):
        """
        Printable receipt (quittance) payload.

        GET /api/v1/receipts/{id}/document/
        """
        return Response(receipt_services.build_receipt_document(self.get_object()))


# =============================================================================
# TRANSACTION VIEWSET
# =============================================================================

class FinancialTransactionViewSet(AgencyScopedMixin, viewsets.ModelViewSet):
    queryset = FinancialTransaction.objects.select_related('owner', 'tenant', 'property')
    serializer_class = FinancialTransactionSerializer
    permission_classes = [IsAgencyMember]
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = FinancialTransactionFilter
    search_fields = ['description']
    ordering_fields = ['date', 'amount', 'created_at']
    ordering = ['-date']

    def perform_create(self, serializer):
        super().perform_create(serializer, created_by=self.request.user)


# =============================================================================
# STATEMENT VIEWSET
# =============================================================================

class FinancialStatementViewSet(AgencyScopedMixin, viewsets.ReadOnlyModelViewSet):
    """
    API endpoint for statements.

    Supports:
    - POST owner_reversal/   compute an owner reversal without storing it
    - POST generate_owner/   store an owner statement
    - POST generate_tenant/  store a tenant statement
    """
    queryset = FinancialStatement.objects.select_related('owner', 'tenant')
    serializer_class = FinancialStatementSerializer
    permission_classes = [IsAgencyMember]
    pagination_class = StandardResultsPagination
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = FinancialStatementFilter
    ordering = ['-generated_at']

    def _get_scoped(self, model, pk):
        queryset = model.objects.all()
        if not self.is_platform_admin():
            queryset = queryset.filter(agency=self.get_agency())
        return queryset.filter(pk=pk).first()

    def _period(self, request, entity):
        payload = StatementPeriodSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data

        model = Owner if entity == 'owner' else Tenant
        if not data.get(entity):
            return data, None, error_response(f"Le champ '{entity}' est obligatoire.")

        obj = self._get_scoped(model, data[entity])
        if obj is None:
            return data, None, error_response("Enregistrement introuvable.", status_code=status.HTTP_404_NOT_FOUND)
        return data, obj, None

    @action(detail=False, methods=['post'])
    def owner_reversal(self, request):
        data, owner, error = self._period(request, 'owner')
        if error:
            return error

        try:
            reversal = receipt_services.calculate_owner_reversal(
                owner, data['start_date'], data['end_date'], fees=data.get('fees')
            )
        except ReceiptValidationError as e:
            return error_response(e, details=e.errors)
        return Response(reversal.to_dict())

    @action(detail=False, methods=['post'])
    def generate_owner(self, request):
        data, owner, error = self._period(request, 'owner')
        if error:
            return error

        statement = receipt_services.generate_owner_statement(
            owner, data['start_date'], data['end_date'], user=request.user
        )
        return Response(self.get_serializer(statement).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'])
    def generate_tenant(self, request):
        data, tenant, error = self._period(request, 'tenant')
        if error:
            return error

        statement = receipt_services.generate_tenant_statement(
            tenant, data['start_date'], data['end_date'], user=request.user
        )
        return Response(self.get_serializer(statement).data, status=status.HTTP_201_CREATED)
