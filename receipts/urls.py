"""
URL configuration for the receipts app.

- /api/v1/receipts/       - Rent receipts (+ {id}/document/)
- /api/v1/transactions/   - Owner and tenant transactions
- /api/v1/statements/     - Statements (+ owner_reversal/, generate_owner/, generate_tenant/)
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import FinancialStatementViewSet, FinancialTransactionViewSet, RentReceiptViewSet

router = DefaultRouter()
router.register(r'receipts', RentReceiptViewSet, basename='receipt')
router.register(r'transactions', FinancialTransactionViewSet, basename='transaction')
router.register(r'statements', FinancialStatementViewSet, basename='statement')

urlpatterns = [
    path('', include(router.urls)),
]
