"""
Receipts Admin - Gestion360 Backend
"""

from django.contrib import admin

from services.business_logic import format_currency_xof

from .models import FinancialStatement, FinancialTransaction, RentReceipt


@admin.register(RentReceipt)
class RentReceiptAdmin(admin.ModelAdmin):
    list_display = ['receipt_number', 'agency', 'tenant', 'property', 'period', 'total_display',
                    'payment_method', 'payment_date']
    list_filter = ['agency', 'period_year', 'period_month', 'payment_method']
    search_fields = ['receipt_number', 'tenant__last_name', 'property__title']
    raw_id_fields = ['contract', 'tenant', 'property', 'owner', 'issued_by']
    readonly_fields = ['receipt_number', 'total_amount', 'commission_amount', 'owner_payment', 'created_at']
    date_hierarchy = 'payment_date'

    def period(self, obj):
        return obj.get_period_label()
    period.short_description = 'Period'

    def total_display(self, obj):
        return format_currency_xof(obj.total_amount)
    total_display.short_description = 'Total'
    total_display.admin_order_field = 'total_amount'


@admin.register(FinancialTransaction)
class FinancialTransactionAdmin(admin.ModelAdmin):
    list_display = ['date', 'agency', 'entity_type', 'type', 'category', 'amount', 'description']
    list_filter = ['agency', 'entity_type', 'type', 'category']
    search_fields = ['description']
    raw_id_fields = ['owner', 'tenant', 'property']


@admin.register(FinancialStatement)
class FinancialStatementAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'agency', 'entity_type', 'period_start', 'period_end', 'generated_at']
    list_filter = ['agency', 'entity_type']
    readonly_fields = ['summary', 'transactions', 'generated_by', 'generated_at']
