"""
CRM Filters - Brokerage Backend API
"""

from django_filters import rest_framework as filters
from django_filters import CharFilter, DateFilter

from .models import FinancialTransaction


class FinancialTransactionFilter(filters.FilterSet):
    """Filter transactions by type and an inclusive date window."""

    type = CharFilter(
        field_name='type',
        lookup_expr='exact',
        help_text='receita or despesa'
    )

    start_date = DateFilter(
        field_name='date',
        lookup_expr='gte',
        help_text='Earliest transaction date (YYYY-MM-DD)'
    )

    end_date = DateFilter(
        field_name='date',
        lookup_expr='lte',
        help_text='Latest transaction date (YYYY-MM-DD)'
    )

    class Meta:
        model = FinancialTransaction
        fields = ['type', 'start_date', 'end_date']
