"""
Collaboration Admin - Gestion360 Backend
"""

from django.contrib import admin

from .models import Announcement, AnnouncementInterest, Message


class AnnouncementInterestInline(admin.TabularInline):
    model = AnnouncementInterest
    extra = 0
    fields = ['agency', 'user', 'status', 'created_at']
    readonly_fields = ['created_at']
    raw_id_fields = ['user']


@admin.register(Announcement)
class AnnouncementAdmin(admin.ModelAdmin):
    list_display = ['title', 'agency', 'property', 'type', 'is_active', 'expires_at', 'views', 'created_at']
    list_filter = ['type', 'is_active', 'agency']
    search_fields = ['title', 'description', 'property__title']
    raw_id_fields = ['property']
    readonly_fields = ['views', 'created_by', 'created_at', 'updated_at']
    inlines = [AnnouncementInterestInline]
    actions = ['deactivate']

    def deactivate(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} annonce(s) désactivée(s).")
    deactivate.short_description = 'Deactivate selected announcements'


@admin.register(AnnouncementInterest)
class AnnouncementInterestAdmin(admin.ModelAdmin):
    list_display = ['announcement', 'agency', 'user', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['announcement__title', 'agency__name', 'user__username']
    raw_id_fields = ['announcement', 'user']


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['subject', 'sender', 'receiver', 'agency', 'is_read', 'created_at']
    list_filter = ['is_read']
    search_fields = ['subject', 'sender__username', 'receiver__username']
    raw_id_fields = ['sender', 'receiver', 'property', 'announcement']
