"""
URL configuration for the contracts app.

- /api/v1/contracts/            - Contracts (+ generate_document, preview, reference_code,
                                  activate, terminate, renew, versions, latest_version)
- /api/v1/contract-templates/   - Templates (+ defaults/, render/)
- /api/v1/inventories/          - Inspections (+ complete, sign, comparison)
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import ContractViewSet, ContractTemplateViewSet, InventoryViewSet

router = DefaultRouter()
router.register(r'contracts', ContractViewSet, basename='contract')
router.register(r'contract-templates', ContractTemplateViewSet, basename='contract-template')
router.register(r'inventories', InventoryViewSet, basename='inventory')

urlpatterns = [
    path('', include(router.urls)),
]
