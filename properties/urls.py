"""
URL configuration for the properties app.

Included by the project URLs at /api/v1/:

- /api/v1/owners/                      - Owners (+ {id}/properties/)
- /api/v1/tenants/                     - Tenants
- /api/v1/properties/                  - Properties (+ statistics/, {id}/geocode/)
- /api/v1/tenant-assignments/          - Property occupations (+ {id}/terminate/)
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import OwnerViewSet, TenantViewSet, PropertyViewSet, PropertyTenantAssignmentViewSet

router = DefaultRouter()
router.register(r'owners', OwnerViewSet, basename='owner')
router.register(r'tenants', TenantViewSet, basename='tenant')
router.register(r'properties', PropertyViewSet, basename='property')
router.register(r'tenant-assignments', PropertyTenantAssignmentViewSet, basename='tenant-assignment')

urlpatterns = [
    path('', include(router.urls)),
]
