"""
Views for the contracts app.

Contracts CRUD with document generation, versions and lifecycle actions,
the contract template library (agency templates plus platform-wide ones)
and property inspections.
"""

import logging

from django.db.models import Q
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from gestion360.api import error_response
from properties.views import AgencyRecordViewSet
from services import BusinessLogicError, TemplateRenderingError

from .default_templates import DEFAULT_TEMPLATE_DEFINITIONS
from .filters import ContractFilter, ContractTemplateFilter, InventoryFilter
from .models import Contract, ContractTemplate, Inventory
from .serializers import (
    ContractDetailSerializer,
    ContractListSerializer,
    ContractTemplateSerializer,
    ContractVersionSerializer,
    GenerateDocumentSerializer,
    InventorySerializer,
    RenderTemplateSerializer,
    RenewContractSerializer,
    TerminateContractSerializer,
)
from .templating import list_placeholders, render_template_body
from . import services as contract_services

logger = logging.getLogger(__name__)


# =============================================================================
# CONTRACT VIEWSET
# =============================================================================

class ContractViewSet(AgencyRecordViewSet):
    """
    API endpoint for contracts.

    Supports:
    - Filtering by type, status, parties, dates, ?expiring_within=N
    - Document generation via /contracts/{id}/generate_document/ (stored)
      and /contracts/{id}/preview/ (not stored)
    - Lifecycle via activate, terminate and renew
    - Generated documents via versions/ and latest_version/
    """
    queryset = Contract.objects.select_related('agency', 'property', 'owner', 'tenant')
    list_serializer_class = ContractListSerializer
    detail_serializer_class = ContractDetailSerializer
    filterset_class = ContractFilter
    search_fields = ['business_id', 'property__title', 'owner__last_name', 'tenant__last_name']
    ordering_fields = ['start_date', 'end_date', 'monthly_rent', 'created_at']
    ordering = ['-start_date']

    def _render(self, request, store):
        contract = self.get_object()
        options = GenerateDocumentSerializer(data=request.data)
        options.is_valid(raise_exception=True)

        try:
            if store:
                rendered = contract_services.generate_and_store_document(
                    contract,
                    user=request.user,
                    overrides=options.to_overrides(),
                    template_id=options.validated_data.get('template_id'),
                )
            else:
                rendered = contract_services.render_contract(
                    contract,
                    overrides=options.to_overrides(),
                    template_id=options.validated_data.get('template_id'),
                )
        except TemplateRenderingError as e:
            logger.warning(f"Contract {contract.pk} document not rendered: {str(e)}")
            return error_response(e)

        return Response(
            rendered.to_dict(),
            status=status.HTTP_201_CREATED if store else status.HTTP_200_OK
        )

    @action(detail=True, methods=['post'])
    def generate_document(self, request, pk=None):
        """POST /api/v1/contracts/{id}/generate_document/"""
        return self._render(request, store=True)

    @action(detail=True, methods=['post'])
    def preview(self, request, pk=None):
        """POST /api/v1/contracts/{id}/preview/"""
        return self._render(request, store=False)

    @action(detail=True, methods=['get'])
    def reference_code(self, request, pk=None):
        """GET /api/v1/contracts/{id}/reference_code/"""
        contract = self.get_object()
        return Response({
            'contract_id': contract.pk,
            'reference_code': contract_services.get_contract_reference_code(contract),
        })

    @action(detail=True, methods=['get'])
    def versions(self, request, pk=None):
        """
        Generated documents of the contract, newest first.

        GET /api/v1/contracts/{id}/versions/
        """
        contract = self.get_object()
        queryset = contract.versions.order_by('-version_number')
        return Response(ContractVersionSerializer(queryset, many=True).data)

    @action(detail=True, methods=['get'])
    def latest_version(self, request, pk=None):
        """GET /api/v1/contracts/{id}/latest_version/"""
        contract = self.get_object()
        latest = contract.versions.order_by('-version_number').first()
        if latest is None:
            return error_response("Aucun document généré pour ce contrat.", status_code=status.HTTP_404_NOT_FOUND)
        return Response(ContractVersionSerializer(latest).data)

    @action(detail=True, methods=['post'])
    def activate(self, request, pk=None):
        contract = self.get_object()
        try:
            contract_services.activate_contract(contract)
        except BusinessLogicError as e:
            return error_response(e)
        return Response(ContractDetailSerializer(contract).data)

    @action(detail=True, methods=['post'])
    def terminate(self, request, pk=None):
        contract = self.get_object()
        payload = TerminateContractSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            contract_services.terminate_contract(contract, payload.validated_data.get('end_date'))
        except BusinessLogicError as e:
            return error_response(e)
        return Response(ContractDetailSerializer(contract).data)

    @action(detail=True, methods=['post'])
    def renew(self, request, pk=None):
        """
        Renew an active contract; returns the new contract.

        POST /api/v1/contracts/{id}/renew/ {"months": 12, "monthly_rent": 160000}
        """
        contract = self.get_object()
        payload = RenewContractSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            successor = contract_services.renew_contract(
                contract,
                months=payload.validated_data['months'],
                monthly_rent=payload.validated_data.get('monthly_rent'),
                user=request.user,
            )
        except BusinessLogicError as e:
            return error_response(e)
        return Response(ContractDetailSerializer(successor).data, status=status.HTTP_201_CREATED)


# =============================================================================
# CONTRACT TEMPLATE VIEWSET
# =============================================================================

class ContractTemplateViewSet(AgencyRecordViewSet):
    """
    API endpoint for contract templates.

    Agencies read their own templates and the platform-wide ones, and
    manage their own. Platform-wide templates are managed by platform
    admins.
    """
    queryset = ContractTemplate.objects.select_related('agency')
    list_serializer_class = ContractTemplateSerializer
    detail_serializer_class = ContractTemplateSerializer
    filterset_class = ContractTemplateFilter
    search_fields = ['name']
    ordering_fields = ['contract_type', 'version', 'created_at']
    ordering = ['contract_type', '-version']

    def get_queryset(self):
        queryset = self.queryset.all()
        if self.is_platform_admin():
            return queryset

        agency = self.get_agency()
        if agency is None:
            return queryset.none()
        return queryset.filter(Q(agency=agency) | Q(agency__isnull=True))

    def perform_create(self, serializer):
        if self.get_agency() is None and self.is_platform_admin():
            serializer.save(created_by=self.request.user)
            return
        super().perform_create(serializer)

    def _check_writable(self, template):
        if template.is_platform_wide and not self.is_platform_admin():
            raise PermissionDenied("Les modèles de la plateforme ne sont pas modifiables.")

    def perform_update(self, serializer):
        self._check_writable(serializer.instance)
        serializer.save()

    def perform_destroy(self, instance):
        self._check_writable(instance)
        instance.delete()

    @action(detail=False, methods=['get'])
    def defaults(self, request):
        """
        Built-in template definitions.

        GET /api/v1/contract-templates/defaults/
        """
        return Response([
            {
                'key': definition.key,
                'usage': definition.usage,
                'name': definition.name,
                'version': definition.version,
                'language': definition.language,
                'variables': list(definition.variables),
                'body': definition.body,
            }
            for definition in DEFAULT_TEMPLATE_DEFINITIONS
        ])

    @action(detail=False, methods=['post'])
    def render(self, request):
        """
        Render a body (or a stored template) against a posted context.

        POST /api/v1/contract-templates/render/
        {"body": "<p>{{ agency.name }}</p>", "context": {"agency": {"name": "X"}}}
        """
        payload = RenderTemplateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        body = payload.validated_data.get('body')
        template_id = payload.validated_data.get('template_id')
        if template_id:
            template = self.get_queryset().filter(pk=template_id).first()
            if template is None:
                return error_response("Modèle introuvable.", status_code=status.HTTP_404_NOT_FOUND)
            body = template.body

        if not body:
            return error_response("Un corps de modèle ou un identifiant est requis.")

        return Response({
            'html': render_template_body(body, payload.validated_data.get('context') or {}),
            'placeholders': list_placeholders(body),
        })


# =============================================================================
# INVENTORY VIEWSET
# =============================================================================

class InventoryViewSet(AgencyRecordViewSet):
    """
    API endpoint for entry and exit inspections (états des lieux).

    Supports:
    - Filtering by property, contract, tenant, type, status and date range
    - Signing via /inventories/{id}/sign/; signed inspections are frozen
    - Exit against entry comparison via /inventories/{id}/comparison/
    """
    queryset = Inventory.objects.select_related('property', 'tenant', 'contract')
    list_serializer_class = InventorySerializer
    detail_serializer_class = InventorySerializer
    filterset_class = InventoryFilter
    search_fields = ['property__title', 'tenant__last_name', 'observations']
    ordering_fields = ['date', 'created_at']
    ordering = ['-date']

    def _check_editable(self, inventory):
        if inventory.status == 'signed':
            raise PermissionDenied("Un état des lieux signé ne peut plus être modifié.")

    def perform_update(self, serializer):
        self._check_editable(serializer.instance)
        serializer.save()

    def perform_destroy(self, instance):
        self._check_editable(instance)
        instance.delete()

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        inventory = self.get_object()
        if inventory.status != 'draft':
            return error_response("Seul un brouillon peut être terminé.")
        inventory.status = 'completed'
        inventory.save(update_fields=['status', 'updated_at'])
        return Response(InventorySerializer(inventory).data)

    @action(detail=True, methods=['post'])
    def sign(self, request, pk=None):
        inventory = self.get_object()
        try:
            contract_services.sign_inventory(inventory)
        except BusinessLogicError as e:
            return error_response(e)
        return Response(InventorySerializer(inventory).data)

    @action(detail=True, methods=['get'])
    def comparison(self, request, pk=None):
        """
        Elements degraded since the matching entry inspection.

        GET /api/v1/inventories/{id}/comparison/
        """
        inventory = self.get_object()
        if inventory.type != 'exit':
            return error_response("Seul un état des lieux de sortie se compare à l'entrée.")

        entry = contract_services.find_entry_inventory(inventory)
        if entry is None:
            return error_response(
                "Aucun état des lieux d'entrée correspondant.", status_code=status.HTTP_404_NOT_FOUND
            )

        return Response({
            'entry_id': entry.pk,
            'exit_id': inventory.pk,
            'degradations': contract_services.compare_inventories(entry, inventory),
        })
