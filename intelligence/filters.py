"""
Intelligence Filters - Brokerage Backend API
"""

from django_filters import rest_framework as filters
from django_filters import CharFilter, DateFilter

from .models import IntelligenceAuditLog


class AuditLogFilter(filters.FilterSet):
    """Filter audit logs by actor, action, entity, outcome and date window."""

    user_id = CharFilter(field_name='user_id', lookup_expr='exact')
    action = CharFilter(field_name='action', lookup_expr='exact')
    entity_type = CharFilter(field_name='entity_type', lookup_expr='exact')
    status = CharFilter(
        field_name='status',
        lookup_expr='exact',
        help_text='success, failed or cancelled'
    )

    start_date = DateFilter(
        field_name='created_at',
        lookup_expr='date__gte',
        help_text='Earliest log date (YYYY-MM-DD)'
    )

    end_date = DateFilter(
        field_name='created_at',
        lookup_expr='date__lte',
        help_text='Latest log date (YYYY-MM-DD)'
    )

    class Meta:
        model = IntelligenceAuditLog
        fields = ['user_id', 'action', 'entity_type', 'status', 'start_date', 'end_date']
