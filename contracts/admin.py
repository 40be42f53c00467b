"""
Contracts Admin - Gestion360 Backend
"""

from django.contrib import admin
from django.utils.html import format_html

from services.business_logic import format_currency_xof

from .models import Contract, ContractTemplate, ContractVersion, Inventory


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = ['business_id', 'contract_type', 'agency', 'property', 'tenant', 'start_date',
                    'end_date', 'rent_display', 'status_display']
    list_filter = ['agency', 'contract_type', 'status']
    search_fields = ['business_id', 'property__title', 'owner__last_name', 'tenant__last_name']
    readonly_fields = ['business_id', 'commission_amount', 'documents', 'created_by', 'created_at', 'updated_at']
    raw_id_fields = ['property', 'owner', 'tenant']
    date_hierarchy = 'start_date'

    fieldsets = (
        ('Parties', {
            'fields': ('agency', 'business_id', 'contract_type', 'property', 'owner', 'tenant'),
        }),
        ('Period', {
            'fields': ('start_date', 'end_date', 'status'),
        }),
        ('Amounts', {
            'fields': ('monthly_rent', 'sale_price', 'deposit', 'charges', 'commission_rate', 'commission_amount'),
        }),
        ('Terms & Documents', {
            'fields': ('terms', 'documents'),
            'classes': ('collapse',),
        }),
        ('System Metadata', {
            'fields': ('created_by', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def rent_display(self, obj):
        amount = obj.sale_price if obj.contract_type == 'vente' else obj.monthly_rent
        return format_currency_xof(amount) if amount is not None else '-'
    rent_display.short_description = 'Amount'

    def status_display(self, obj):
        colors = {
            'draft': 'gray',
            'active': 'green',
            'expired': 'orange',
            'terminated': 'red',
            'renewed': 'blue',
        }
        return format_html(
            '<span style="color: {};">{}</span>',
            colors.get(obj.status, 'black'),
            obj.get_status_display()
        )
    status_display.short_description = 'Status'
    status_display.admin_order_field = 'status'


@admin.register(ContractTemplate)
class ContractTemplateAdmin(admin.ModelAdmin):
    list_display = ['name', 'contract_type', 'usage_type', 'version', 'scope', 'is_active', 'updated_at']
    list_filter = ['contract_type', 'usage_type', 'is_active', 'language']
    search_fields = ['name']
    readonly_fields = ['created_by', 'created_at', 'updated_at']

    def scope(self, obj):
        return obj.agency.name if obj.agency_id else 'Plateforme'
    scope.short_description = 'Scope'


@admin.register(ContractVersion)
class ContractVersionAdmin(admin.ModelAdmin):
    list_display = ['contract', 'version_number', 'created_by', 'created_at']
    search_fields = ['contract__business_id']
    raw_id_fields = ['contract']
    readonly_fields = ['contract', 'version_number', 'body', 'metadata', 'created_by', 'created_at']

    def has_add_permission(self, request):
        return False


@admin.register(Inventory)
class InventoryAdmin(admin.ModelAdmin):
    list_display = ['property', 'type', 'status', 'date', 'tenant', 'agency']
    list_filter = ['agency', 'type', 'status']
    search_fields = ['property__title', 'tenant__last_name']
    raw_id_fields = ['property', 'contract', 'tenant']
    readonly_fields = ['signed_at', 'created_by', 'created_at', 'updated_at']
    date_hierarchy = 'date'
