"""
Dashboard analytics for the brokerage back office.

This module aggregates catalogue, CRM and financial data for the admin
dashboard:
- Entity counts (stats endpoint)
- Property breakdowns by status, type and neighborhood, price range and
  monthly creation counts
- Monthly revenue/expense series, totals and top revenue categories
- Client growth and owner coverage

All aggregation runs in the database; labels are the Portuguese strings
the dashboard displays.
"""

import logging
from collections import OrderedDict
from datetime import timedelta
from typing import Dict, List, Any, Optional

from django.db.models import Count, Sum, Min, Max, Avg
from django.db.models.functions import TruncMonth
from django.utils import timezone

from content.models import Banner
from crm.models import Client, Owner, FinancialTransaction
from properties.models import Property, Neighborhood

logger = logging.getLogger(__name__)

RECENT_MONTHS = 6
RECENT_CLIENT_DAYS = 30
TOP_NEIGHBORHOODS = 10
TOP_CATEGORIES = 5

STATUS_LABELS = {
    'venda': 'Para Venda',
    'aluguel': 'Para Aluguel',
    'ambos': 'Venda/Aluguel',
    'vendido': 'Vendido',
}

TYPE_LABELS = {
    'casa': 'Casa padrão',
    'casa padrão': 'Casa padrão',
    'apartamento': 'Apartamento',
    'apto': 'Apartamento',
    'terreno': 'Terreno',
    'comercial': 'Comercial',
    'condominio': 'Casa em condomínio',
    'condomínio': 'Casa em condomínio',
    'casa em condomínio': 'Casa em condomínio',
}

MONTH_ABBREVIATIONS = ['jan', 'fev', 'mar', 'abr', 'mai', 'jun', 'jul', 'ago', 'set', 'out', 'nov', 'dez']


# =============================================================================
# LABEL HELPERS
# =============================================================================

def status_label(status: Optional[str]) -> str:
    """Dashboard label for a listing status; unknown values read as inactive."""
    return STATUS_LABELS.get(status or '', 'Inativo')


def type_label(property_type: Optional[str]) -> str:
    """Dashboard label for a property type, case-insensitive, with aliases."""
    if not property_type:
        return 'Outro'
    return TYPE_LABELS.get(property_type.strip().lower(), 'Outro')


def month_key(value) -> str:
    """YYYY-MM key for a date or datetime."""
    return value.strftime('%Y-%m')


def month_label(key: str) -> str:
    """Short Portuguese month label, e.g. "2025-03" -> "mar 2025"."""
    year, month = key.split('-')
    return f"{MONTH_ABBREVIATIONS[int(month) - 1]} {year}"


def _to_float(value) -> float:
    return float(value) if value is not None else 0.0


# =============================================================================
# STATS
# =============================================================================

def admin_stats() -> Dict[str, int]:
    """Entity counts for the dashboard header."""
    return {
        'properties': Property.objects.count(),
        'neighborhoods': Neighborhood.objects.count(),
        'clients': Client.objects.count(),
        'banners': Banner.objects.count(),
    }


def financial_summary() -> Dict[str, float]:
    """Revenue, expense and balance over every transaction."""
    totals = dict(
        FinancialTransaction.objects.values_list('type').annotate(total=Sum('amount')).values_list('type', 'total')
    )
    revenue = _to_float(totals.get('receita'))
    expenses = _to_float(totals.get('despesa'))
    return {
        'total_revenue': revenue,
        'total_expenses': expenses,
        'balance': revenue - expenses,
    }


# =============================================================================
# PROPERTY ANALYTICS
# =============================================================================

def property_stats(now=None) -> Dict[str, Any]:
    """
    Property breakdowns for the dashboard charts.

    Returns:
        Dictionary with by_status, by_type, by_neighborhood, price_range, recent
    """
    now = now or timezone.now()

    by_status = [
        {'status': status_label(row['status']), 'count': row['count']}
        for row in Property.objects.values('status').annotate(count=Count('id')).order_by('status')
    ]

    # Several raw types can share a label ("apto" and "apartamento")
    type_counts: Dict[str, int] = OrderedDict()
    for row in Property.objects.values('property_type').annotate(count=Count('id')).order_by('property_type'):
        label = type_label(row['property_type'])
        type_counts[label] = type_counts.get(label, 0) + row['count']
    by_type = [{'type': label, 'count': count} for label, count in type_counts.items()]

    by_neighborhood = [
        {'neighborhood': row['neighborhood__name'] or 'Sem bairro', 'count': row['count']}
        for row in Property.objects.values('neighborhood__name')
        .annotate(count=Count('id'))
        .order_by('-count', 'neighborhood__name')[:TOP_NEIGHBORHOODS]
    ]

    prices = Property.objects.filter(status__in=['venda', 'aluguel', 'ambos']).aggregate(
        min=Min('price'), max=Max('price'), avg=Avg('price')
    )

    since = now - timedelta(days=RECENT_MONTHS * 31)
    recent = [
        {'month': month_key(row['month']), 'count': row['count']}
        for row in Property.objects.filter(created_at__gte=since)
        .annotate(month=TruncMonth('created_at'))
        .values('month')
        .annotate(count=Count('id'))
        .order_by('month')
        if row['month'] is not None
    ]

    return {
        'by_status': by_status,
        'by_type': by_type,
        'by_neighborhood': by_neighborhood,
        'price_range': {
            'min': _to_float(prices['min']),
            'max': _to_float(prices['max']),
            'avg': _to_float(prices['avg']),
        },
        'recent': recent[-RECENT_MONTHS:],
    }


# =============================================================================
# FINANCIAL ANALYTICS
# =============================================================================

def financial_stats() -> Dict[str, Any]:
    """
    Financial series for the dashboard.

    by_month covers the latest six months that have any transaction, oldest
    first; totals and by_category cover everything.
    """
    monthly: Dict[str, Dict[str, float]] = {}
    rows = (
        FinancialTransaction.objects
        .annotate(month=TruncMonth('date'))
        .values('month', 'type')
        .annotate(total=Sum('amount'))
        .order_by('month')
    )
    for row in rows:
        if row['month'] is None:
            continue
        key = month_key(row['month'])
        bucket = monthly.setdefault(key, {'revenue': 0.0, 'expense': 0.0})
        if row['type'] == 'receita':
            bucket['revenue'] += _to_float(row['total'])
        elif row['type'] == 'despesa':
            bucket['expense'] += _to_float(row['total'])

    by_month: List[Dict[str, Any]] = [
        {
            'month': key,
            'label': month_label(key),
            'revenue': monthly[key]['revenue'],
            'expense': monthly[key]['expense'],
        }
        for key in sorted(monthly)[-RECENT_MONTHS:]
    ]

    summary = financial_summary()

    by_category = [
        {'category': row['category'] or 'Sem categoria', 'amount': _to_float(row['amount'])}
        for row in FinancialTransaction.objects.filter(type='receita')
        .values('category')
        .annotate(amount=Sum('amount'))
        .order_by('-amount')[:TOP_CATEGORIES]
    ]

    return {
        'by_month': by_month,
        'totals': {
            'revenue': summary['total_revenue'],
            'expense': summary['total_expenses'],
            'balance': summary['balance'],
        },
        'by_category': by_category,
    }


# =============================================================================
# CLIENT & OWNER ANALYTICS
# =============================================================================

def client_stats(now=None) -> Dict[str, Any]:
    """Total clients, clients created in the last 30 days and their share (%)."""
    now = now or timezone.now()
    total = Client.objects.count()
    recent = Client.objects.filter(created_at__gte=now - timedelta(days=RECENT_CLIENT_DAYS)).count()
    return {
        'total': total,
        'recent': recent,
        'growth': (recent / total * 100) if total else 0,
    }


def owner_stats() -> Dict[str, int]:
    """Total owners and how many are linked to at least one property."""
    return {
        'total': Owner.objects.count(),
        'with_properties': Owner.objects.filter(ownerproperty__isnull=False).distinct().count(),
    }


def admin_analytics() -> Dict[str, Any]:
    """Everything the analytics dashboard shows, in one payload."""
    now = timezone.now()
    analytics = {
        'property_stats': property_stats(now),
        'financial_stats': financial_stats(),
        'client_stats': client_stats(now),
        'owner_stats': owner_stats(),
    }
    logger.debug("Admin analytics computed")
    return analytics
