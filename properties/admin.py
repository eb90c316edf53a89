"""
Properties Admin - Brokerage Backend
Django admin configuration for properties and neighborhoods.
"""

from django.contrib import admin
from django.db.models import Count

from .models import Property, Neighborhood


@admin.register(Neighborhood)
class NeighborhoodAdmin(admin.ModelAdmin):
    """Admin interface for neighborhoods."""

    list_display = ['name', 'slug', 'property_count', 'updated_at']
    search_fields = ['name', 'slug']
    readonly_fields = ['id', 'slug', 'created_at', 'updated_at']

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_property_count=Count('properties'))

    @admin.display(description='Properties', ordering='_property_count')
    def property_count(self, obj):
        return obj._property_count


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    """
    Admin interface for properties.

    Features:
    - Filtering by type, status, neighborhood and visibility
    - Inline editing of display order and flags from the list
    - Bulk activate/deactivate actions
    """

    list_display = [
        'title',
        'property_type',
        'status',
        'price',
        'neighborhood',
        'is_featured',
        'is_active',
        'display_order',
    ]
    list_editable = ['is_featured', 'is_active', 'display_order']
    list_filter = ['property_type', 'status', 'is_featured', 'is_active', 'neighborhood']
    search_fields = ['title', 'slug', 'description', 'external_id']
    readonly_fields = ['id', 'slug', 'created_at', 'updated_at']
    list_select_related = ['neighborhood']
    actions = ['activate_properties', 'deactivate_properties']

    fieldsets = (
        ('Listing', {
            'fields': ('id', 'title', 'slug', 'description', 'property_type', 'status', 'price')
        }),
        ('Characteristics', {
            'fields': ('bedrooms', 'bathrooms', 'parking_spaces', 'area', 'land_area', 'amenities')
        }),
        ('Location & Media', {
            'fields': ('neighborhood', 'images')
        }),
        ('Visibility', {
            'fields': ('is_featured', 'is_active', 'display_order')
        }),
        ('Source', {
            'fields': ('external_id', 'source_url', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    @admin.action(description='Activate selected properties')
    def activate_properties(self, request, queryset):
        updated = queryset.update(is_active=True)
        self.message_user(request, f"{updated} properties activated.")

    @admin.action(description='Deactivate selected properties')
    def deactivate_properties(self, request, queryset):
        updated = queryset.update(is_active=False)
        self.message_user(request, f"{updated} properties deactivated.")
