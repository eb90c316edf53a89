"""
Content Admin - Brokerage Backend
Django admin configuration for site content.
"""

from django.contrib import admin

from .models import Banner, AboutContent, Setting, ContactMessage


@admin.register(Banner)
class BannerAdmin(admin.ModelAdmin):
    list_display = ['title', 'order', 'is_active', 'updated_at']
    list_editable = ['order', 'is_active']
    list_filter = ['is_active']


@admin.register(AboutContent)
class AboutContentAdmin(admin.ModelAdmin):
    list_display = ['section', 'title', 'updated_at']


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'updated_at']
    search_fields = ['key', 'value']


@admin.register(ContactMessage)
class ContactMessageAdmin(admin.ModelAdmin):
    """Contact form inbox with a bulk "mark as read" action."""

    list_display = ['name', 'email', 'phone', 'is_read', 'created_at']
    list_filter = ['is_read']
    search_fields = ['name', 'email', 'message']
    readonly_fields = ['created_at']
    actions = ['mark_as_read']

    @admin.action(description='Mark selected messages as read')
    def mark_as_read(self, request, queryset):
        updated = queryset.update(is_read=True)
        self.message_user(request, f"{updated} messages marked as read.")
