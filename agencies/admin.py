"""
Agencies Admin - Gestion360 Backend
Django admin configuration for agencies and the platform console models.
"""

from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html

from services import RegistrationApprovalError
from services.business_logic import format_currency_xof

from .models import (
    Agency,
    AgencyUser,
    PlatformAdmin,
    AgencyRegistrationRequest,
    AgencySubscription,
    SubscriptionPayment,
    AgencyRanking,
    PlatformSetting,
)
from . import services as agency_services


# =============================================================================
# INLINE ADMIN CLASSES
# =============================================================================

class AgencyUserInline(admin.TabularInline):
    """Inline editing of members within agency admin"""
    model = AgencyUser
    extra = 0
    fields = ['user', 'role', 'is_active']
    raw_id_fields = ['user']


class SubscriptionPaymentInline(admin.TabularInline):
    model = SubscriptionPayment
    extra = 0
    fields = ['amount', 'payment_date', 'payment_method', 'reference_number', 'status']


# =============================================================================
# MAIN ADMIN CLASSES
# =============================================================================

@admin.register(Agency)
class AgencyAdmin(admin.ModelAdmin):
    list_display = ['name', 'business_id', 'city', 'commercial_register', 'status', 'member_count', 'created_at']
    list_filter = ['status', 'is_accredited', 'city']
    search_fields = ['name', 'commercial_register', 'business_id', 'email']
    readonly_fields = ['business_id', 'created_at', 'updated_at']

    fieldsets = (
        ('Identity', {
            'fields': ('name', 'business_id', 'commercial_register', 'logo_url', 'status'),
        }),
        ('Accreditation', {
            'fields': ('is_accredited', 'accreditation_number'),
        }),
        ('Contact', {
            'fields': ('address', 'city', 'phone', 'email'),
        }),
        ('Representation', {
            'fields': ('director', 'legal_representative'),
        }),
        ('System Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    inlines = [AgencyUserInline]
    list_per_page = 25

    def member_count(self, obj):
        count = obj.members.count()
        if count > 0:
            url = reverse('admin:agencies_agencyuser_changelist') + f'?agency__id__exact={obj.id}'
            return format_html('<a href="{}">{} membres</a>', url, count)
        return '0 membres'
    member_count.short_description = 'Members'


@admin.register(AgencyUser)
class AgencyUserAdmin(admin.ModelAdmin):
    list_display = ['user', 'agency', 'role', 'is_active', 'created_at']
    list_filter = ['role', 'is_active', 'agency']
    search_fields = ['user__username', 'user__email', 'agency__name']


@admin.register(PlatformAdmin)
class PlatformAdminAdmin(admin.ModelAdmin):
    list_display = ['user', 'role', 'is_active', 'last_login_at']
    list_filter = ['role', 'is_active']


@admin.register(AgencyRegistrationRequest)
class AgencyRegistrationRequestAdmin(admin.ModelAdmin):
    list_display = ['agency_name', 'commercial_register', 'city', 'director_email', 'status_display', 'created_at']
    list_filter = ['status', 'city']
    search_fields = ['agency_name', 'commercial_register', 'director_email']
    readonly_fields = ['processed_by', 'processed_at', 'created_at', 'updated_at']
    actions = ['approve_requests']

    def status_display(self, obj):
        colors = {'pending': 'orange', 'approved': 'green', 'rejected': 'red'}
        return format_html(
            '<span style="color: {};">{}</span>',
            colors.get(obj.status, 'black'),
            obj.get_status_display()
        )
    status_display.short_description = 'Status'
    status_display.admin_order_field = 'status'

    def approve_requests(self, request, queryset):
        approved = 0
        for registration in queryset.filter(status='pending'):
            try:
                agency_services.approve_registration_request(registration.pk, request.user)
                approved += 1
            except RegistrationApprovalError as e:
                self.message_user(request, f"{registration.agency_name}: {e}", level='error')
        self.message_user(request, f"{approved} demande(s) approuvée(s).")
    approve_requests.short_description = 'Approve selected requests'


@admin.register(AgencySubscription)
class AgencySubscriptionAdmin(admin.ModelAdmin):
    list_display = ['agency', 'plan_type', 'status', 'fee_display', 'next_payment_date', 'last_payment_date']
    list_filter = ['status', 'plan_type']
    search_fields = ['agency__name']
    readonly_fields = ['payment_history', 'created_at', 'updated_at']
    inlines = [SubscriptionPaymentInline]

    def fee_display(self, obj):
        return format_currency_xof(obj.monthly_fee)
    fee_display.short_description = 'Monthly fee'
    fee_display.admin_order_field = 'monthly_fee'


@admin.register(SubscriptionPayment)
class SubscriptionPaymentAdmin(admin.ModelAdmin):
    list_display = ['subscription', 'amount', 'payment_date', 'payment_method', 'status']
    list_filter = ['status', 'payment_method']
    date_hierarchy = 'payment_date'


@admin.register(AgencyRanking)
class AgencyRankingAdmin(admin.ModelAdmin):
    list_display = ['year', 'rank', 'agency', 'total_score', 'volume_score', 'recovery_rate_score', 'satisfaction_score']
    list_filter = ['year']
    ordering = ['-year', 'rank']


@admin.register(PlatformSetting)
class PlatformSettingAdmin(admin.ModelAdmin):
    list_display = ['setting_key', 'setting_value', 'category', 'is_public', 'updated_at']
    list_filter = ['category', 'is_public']
    search_fields = ['setting_key', 'description']


# =============================================================================
# ADMIN SITE CUSTOMIZATION
# =============================================================================

admin.site.site_header = 'Gestion360 Immo Administration'
admin.site.site_title = 'Gestion360 Admin'
admin.site.index_title = 'Gestion immobilière multi-agences'
