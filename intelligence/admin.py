"""
Intelligence Admin - Brokerage Backend
"""

from django.contrib import admin

from .models import IntelligenceAuditLog


@admin.register(IntelligenceAuditLog)
class IntelligenceAuditLogAdmin(admin.ModelAdmin):
    list_display = ['action', 'entity_type', 'entity_id', 'status', 'user_id', 'created_at']
    list_filter = ['status', 'action', 'entity_type']
    search_fields = ['entity_id', 'user_message', 'error_message']
    readonly_fields = [f.name for f in IntelligenceAuditLog._meta.fields]
