"""
URL configuration for the agencies app.

Included by the project URLs at /api/v1/:

- /api/v1/agencies/                     - Agencies (+ me/, {id}/stats/, {id}/export/)
- /api/v1/agency-users/                 - Agency members
- /api/v1/registration-requests/        - Sign-up requests (+ {id}/approve/, {id}/reject/)
- /api/v1/subscriptions/                - Subscriptions (+ {id}/extend/, {id}/suspend/, {id}/activate/)
- /api/v1/subscription-payments/        - Subscription payments
- /api/v1/rankings/                     - Yearly rankings (+ generate/)
- /api/v1/platform-settings/            - Platform configuration (+ seed_defaults/)
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    AgencyViewSet,
    AgencyUserViewSet,
    AgencyRegistrationRequestViewSet,
    AgencySubscriptionViewSet,
    SubscriptionPaymentViewSet,
    AgencyRankingViewSet,
    PlatformSettingViewSet,
)

router = DefaultRouter()
router.register(r'agencies', AgencyViewSet, basename='agency')
router.register(r'agency-users', AgencyUserViewSet, basename='agency-user')
router.register(r'registration-requests', AgencyRegistrationRequestViewSet, basename='registration-request')
router.register(r'subscriptions', AgencySubscriptionViewSet, basename='subscription')
router.register(r'subscription-payments', SubscriptionPaymentViewSet, basename='subscription-payment')
router.register(r'rankings', AgencyRankingViewSet, basename='ranking')
router.register(r'platform-settings', PlatformSettingViewSet, basename='platform-setting')

urlpatterns = [
    path('', include(router.urls)),
]
