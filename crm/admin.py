"""
CRM Admin - Brokerage Backend
"""

from django.contrib import admin

from .models import Client, Owner, ClientProperty, OwnerProperty, ContactHistory, FinancialTransaction


class ClientPropertyInline(admin.TabularInline):
    model = ClientProperty
    extra = 0
    autocomplete_fields = ['property']


class OwnerPropertyInline(admin.TabularInline):
    model = OwnerProperty
    extra = 0
    autocomplete_fields = ['property']


class ContactHistoryInline(admin.TabularInline):
    model = ContactHistory
    extra = 0
    readonly_fields = ['contact_date']


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'phone', 'created_at']
    search_fields = ['name', 'email', 'phone']
    inlines = [ClientPropertyInline, ContactHistoryInline]


@admin.register(Owner)
class OwnerAdmin(admin.ModelAdmin):
    list_display = ['name', 'email', 'phone', 'created_at']
    search_fields = ['name', 'email', 'phone']
    inlines = [OwnerPropertyInline]


@admin.register(FinancialTransaction)
class FinancialTransactionAdmin(admin.ModelAdmin):
    """Transactions with type/frequency filtering and date drill-down."""

    list_display = ['description', 'type', 'amount', 'category', 'date', 'frequency_type']
    list_filter = ['type', 'frequency_type', 'category']
    search_fields = ['description', 'category']
    date_hierarchy = 'date'
