"""
Properties Admin - Gestion360 Backend
Django admin configuration for owners, tenants and properties.
"""

from django.contrib import admin
from django.db.models import Count
from django.urls import reverse
from django.utils.html import format_html

from services.business_logic import format_currency_xof
from services.geocoding import GeocodingService

from .models import Owner, Tenant, Property, PropertyTenantAssignment


# =============================================================================
# INLINE ADMIN CLASSES
# =============================================================================

class PropertyInline(admin.TabularInline):
    """Inline listing of properties within owner admin"""
    model = Property
    extra = 0
    fields = ['title', 'standing', 'monthly_rent', 'is_available']
    show_change_link = True


# =============================================================================
# MAIN ADMIN CLASSES
# =============================================================================

@admin.register(Owner)
class OwnerAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'business_id', 'agency', 'phone', 'property_title', 'property_count', 'created_at']
    list_filter = ['agency', 'property_title', 'marital_status']
    search_fields = ['first_name', 'last_name', 'phone', 'email', 'business_id']
    readonly_fields = ['business_id', 'created_by', 'created_at', 'updated_at']

    fieldsets = (
        ('Identity', {
            'fields': ('agency', 'business_id', 'first_name', 'last_name', 'phone', 'email'),
        }),
        ('Address', {
            'fields': ('address', 'city'),
        }),
        ('Land Title', {
            'fields': ('property_title', 'property_title_details'),
        }),
        ('Family', {
            'fields': ('marital_status', 'spouse_name', 'spouse_phone', 'children_count'),
            'classes': ('collapse',),
        }),
        ('System Metadata', {
            'fields': ('created_by', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    inlines = [PropertyInline]
    list_per_page = 25

    def property_count(self, obj):
        """Display count of properties for this owner"""
        count = obj.property_count
        if count > 0:
            url = reverse('admin:properties_property_changelist') + f'?owner__id__exact={obj.id}'
            return format_html('<a href="{}">{} biens</a>', url, count)
        return '0 biens'
    property_count.short_description = 'Properties'
    property_count.admin_order_field = 'property_count'

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(property_count=Count('properties'))


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ['__str__', 'business_id', 'agency', 'phone', 'profession', 'payment_status_display']
    list_filter = ['agency', 'payment_status', 'nationality']
    search_fields = ['first_name', 'last_name', 'phone', 'email', 'registration_number', 'business_id']
    readonly_fields = ['business_id', 'created_by', 'created_at', 'updated_at']

    fieldsets = (
        ('Identity', {
            'fields': ('agency', 'business_id', 'first_name', 'last_name', 'phone', 'email',
                       'profession', 'nationality', 'registration_number'),
        }),
        ('Documents', {
            'fields': ('photo_url', 'id_card_url'),
            'classes': ('collapse',),
        }),
        ('Family', {
            'fields': ('marital_status', 'spouse_name', 'spouse_phone', 'children_count'),
            'classes': ('collapse',),
        }),
        ('Payment', {
            'fields': ('payment_status',),
        }),
        ('System Metadata', {
            'fields': ('created_by', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def payment_status_display(self, obj):
        colors = {'bon': 'green', 'irregulier': 'orange', 'mauvais': 'red'}
        return format_html(
            '<span style="color: {};">{}</span>',
            colors.get(obj.payment_status, 'black'),
            obj.get_payment_status_display()
        )
    payment_status_display.short_description = 'Payment status'
    payment_status_display.admin_order_field = 'payment_status'


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ['title', 'business_id', 'agency', 'owner', 'standing', 'rent_display', 'is_available', 'has_coordinates']
    list_filter = ['agency', 'standing', 'usage_type', 'is_available', 'for_rent', 'for_sale']
    search_fields = ['title', 'business_id', 'owner__last_name', 'owner__first_name']
    readonly_fields = ['business_id', 'created_by', 'created_at', 'updated_at']
    actions = ['geocode_selected']

    fieldsets = (
        ('Identity', {
            'fields': ('agency', 'owner', 'business_id', 'title', 'description'),
        }),
        ('Location', {
            'fields': ('location',),
        }),
        ('Details', {
            'fields': ('details', 'standing', 'rooms', 'images', 'usage_type'),
        }),
        ('Offer', {
            'fields': ('is_available', 'for_rent', 'for_sale', 'monthly_rent'),
        }),
        ('System Metadata', {
            'fields': ('created_by', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    def rent_display(self, obj):
        """Display monthly rent formatted"""
        if obj.monthly_rent is not None:
            return format_currency_xof(obj.monthly_rent)
        return '-'
    rent_display.short_description = 'Monthly rent'
    rent_display.admin_order_field = 'monthly_rent'

    def has_coordinates(self, obj):
        """Display geocoding status"""
        if obj.has_coordinates:
            return format_html('<span style="color: green;">✓</span>')
        return format_html('<span style="color: red;">✗</span>')
    has_coordinates.short_description = 'Coords'

    def geocode_selected(self, request, queryset):
        results = GeocodingService().batch_geocode_properties(queryset)
        self.message_user(
            request,
            f"{results['success']} géolocalisé(s), {results['skipped']} ignoré(s), {results['failed']} échec(s)."
        )
    geocode_selected.short_description = 'Geocode selected properties'


@admin.register(PropertyTenantAssignment)
class PropertyTenantAssignmentAdmin(admin.ModelAdmin):
    list_display = ['property', 'tenant', 'agency', 'lease_start', 'lease_end', 'rent_display', 'status']
    list_filter = ['agency', 'status']
    search_fields = ['property__title', 'tenant__last_name', 'tenant__first_name']
    raw_id_fields = ['property', 'tenant']
    readonly_fields = ['created_by', 'updated_by', 'created_at', 'updated_at']

    def rent_display(self, obj):
        return format_currency_xof(obj.get_total_monthly())
    rent_display.short_description = 'Rent + charges'
