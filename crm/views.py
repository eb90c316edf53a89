"""
Views for the CRM app.

Back-office endpoints for clients, owners, client contact history and
financial transactions. Every endpoint requires an admin session.
"""

import logging

from django.db import transaction
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from brokerage.mixins import AdminViewSetMixin
from services.analytics import financial_summary
from .filters import FinancialTransactionFilter
from .models import Client, Owner, ClientProperty, OwnerProperty, FinancialTransaction
from .serializers import (
    ClientSerializer,
    ContactHistorySerializer,
    FinancialSummarySerializer,
    FinancialTransactionSerializer,
    OwnerSerializer,
    PropertyLinksSerializer,
)

logger = logging.getLogger(__name__)


# =============================================================================
# PROPERTY LINK MIXIN
# =============================================================================

class PropertyLinksMixin:
    """
    ``GET/POST <id>/properties/`` for parties linked to properties.

    POST replaces the whole set of links.
    """

    link_model = None
    link_field = None

    @action(detail=True, methods=['get', 'post'])
    def properties(self, request, pk=None):
        party = self.get_object()

        if request.method == 'POST':
            serializer = PropertyLinksSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            property_ids = serializer.validated_data['property_ids']

            with transaction.atomic():
                self.link_model.objects.filter(**{self.link_field: party}).delete()
                self.link_model.objects.bulk_create([
                    self.link_model(**{self.link_field: party, 'property_id': property_id})
                    for property_id in property_ids
                ])

            logger.info(f"{self.entity_label} {party.pk} linked to {len(property_ids)} properties")
            return Response({'message': 'Properties updated successfully'})

        property_ids = self.link_model.objects.filter(
            **{self.link_field: party}
        ).values_list('property_id', flat=True)
        return Response([str(pk) for pk in property_ids])


# =============================================================================
# CLIENT & OWNER VIEWSETS
# =============================================================================

class ClientViewSet(PropertyLinksMixin, AdminViewSetMixin, viewsets.ModelViewSet):
    """
    Back-office CRUD for clients, newest first.

    Extra actions:
    - properties: properties of interest (GET ids / POST replace)
    - history: contact history (GET newest first / POST new entry)
    """
    queryset = Client.objects.all().order_by('-created_at')
    serializer_class = ClientSerializer
    entity_label = 'Client'
    link_model = ClientProperty
    link_field = 'client'

    @action(detail=True, methods=['get', 'post'])
    def history(self, request, pk=None):
        client = self.get_object()

        if request.method == 'POST':
            serializer = ContactHistorySerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            entry = serializer.save(client=client)
            return Response(ContactHistorySerializer(entry).data, status=status.HTTP_201_CREATED)

        entries = client.contact_history.all().order_by('-contact_date')
        return Response(ContactHistorySerializer(entries, many=True).data)


class OwnerViewSet(PropertyLinksMixin, AdminViewSetMixin, viewsets.ModelViewSet):
    """Back-office CRUD for property owners, newest first."""
    queryset = Owner.objects.all().order_by('-created_at')
    serializer_class = OwnerSerializer
    entity_label = 'Owner'
    link_model = OwnerProperty
    link_field = 'owner'


# =============================================================================
# FINANCIAL TRANSACTION VIEWSET
# =============================================================================

class FinancialTransactionViewSet(AdminViewSetMixin, viewsets.ModelViewSet):
    """
    Back-office CRUD for financial transactions.

    Filters: type, start_date, end_date. Ordered by date, newest first.
    """
    queryset = FinancialTransaction.objects.all().order_by('-date', '-created_at')
    serializer_class = FinancialTransactionSerializer
    filterset_class = FinancialTransactionFilter
    entity_label = 'Transaction'

    @action(detail=False, methods=['get'])
    def summary(self, request):
        """Revenue, expense and balance totals over every transaction."""
        return Response(FinancialSummarySerializer(financial_summary()).data)
