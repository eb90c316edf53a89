"""
Views for the properties app.

This module defines the API viewsets for Properties and Neighborhoods:
- Public read-only endpoints used by the marketing site
- Admin CRUD endpoints with ordering and slug maintenance actions

Public property listing is paginated ({properties, total, page, total_pages})
unless ?paginated=false is passed, or an admin session omits ?page (the
admin panel's legacy full-list request).
"""

import logging
import re

from rest_framework import viewsets, status
from rest_framework.decorators import action, api_view
from rest_framework.exceptions import NotFound
from rest_framework.response import Response

from brokerage.auth import is_admin_request
from brokerage.mixins import AdminViewSetMixin
from brokerage.pagination import PageLimitPagination
from services import BusinessLogicError
from services.business_logic import (
    OrderUpdate,
    apply_bulk_order,
    find_similar_properties,
    regenerate_all_slugs,
    validate_display_order,
)
from .filters import PropertyFilter, NeighborhoodFilter
from .models import Property, Neighborhood
from .serializers import (
    BulkOrderSerializer,
    NeighborhoodSerializer,
    PropertyDetailSerializer,
    PropertySerializer,
)

logger = logging.getLogger(__name__)

UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE
)


def get_property_by_id_or_slug(id_or_slug: str, queryset=None) -> Property:
    """
    Resolve a URL segment to a property.

    UUID-shaped segments are tried as a primary key first; anything that
    does not resolve falls back to a slug lookup.
    """
    queryset = queryset if queryset is not None else Property.objects.all()
    prop = None
    if UUID_PATTERN.match(id_or_slug):
        prop = queryset.filter(pk=id_or_slug).first()
    if prop is None:
        prop = queryset.filter(slug=id_or_slug).first()
    if prop is None:
        raise NotFound('Property not found')
    return prop


# =============================================================================
# CUSTOM PAGINATION CLASS
# =============================================================================

class PropertyPagination(PageLimitPagination):
    """
    Public listing pagination.

    Usage:
        GET /api/properties/                  -> first 12 properties
        GET /api/properties/?page=3&limit=24  -> properties 49..72
    """
    page_size = 12
    results_key = 'properties'


# =============================================================================
# PUBLIC PROPERTY VIEWSET
# =============================================================================

class PropertyViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Public API endpoint for Properties.

    Supports:
    - Paginated, filtered listing ordered by display order then recency
    - Legacy unpaginated listing
    - Retrieval by id or slug
    - Similar properties
    """
    queryset = Property.objects.select_related('neighborhood').order_by('-display_order', '-created_at')
    serializer_class = PropertySerializer
    pagination_class = PropertyPagination
    filterset_class = PropertyFilter
    lookup_url_kwarg = 'id_or_slug'
    lookup_value_regex = '[^/]+'

    def get_serializer_class(self):
        """Nested neighborhood only on the detail endpoint."""
        if self.action == 'retrieve':
            return PropertyDetailSerializer
        return PropertySerializer

    def paginate_queryset(self, queryset):
        if self._use_legacy_listing():
            return None
        return super().paginate_queryset(queryset)

    def _use_legacy_listing(self) -> bool:
        """Full array instead of a page envelope."""
        params = self.request.query_params
        if params.get('paginated') == 'false':
            return True
        return 'page' not in params and is_admin_request(self.request)

    def get_object(self):
        return get_property_by_id_or_slug(self.kwargs['id_or_slug'], self.get_queryset())

    @action(detail=True, methods=['get'])
    def similar(self, request, id_or_slug=None):
        """
        Properties similar to this one.

        Query parameters:
        - limit: maximum number of results (default 4)
        """
        prop = self.get_object()
        try:
            limit = max(int(request.query_params.get('limit', 4)), 1)
        except (TypeError, ValueError):
            limit = 4

        similar = find_similar_properties(prop, limit=limit)
        serializer = PropertySerializer(similar, many=True)
        return Response(serializer.data)


# =============================================================================
# PUBLIC NEIGHBORHOOD VIEWSET
# =============================================================================

class NeighborhoodViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Public API endpoint for Neighborhoods, looked up by slug.
    """
    queryset = Neighborhood.objects.all()
    serializer_class = NeighborhoodSerializer
    pagination_class = None
    filterset_class = NeighborhoodFilter
    lookup_field = 'slug'

    def get_object(self):
        slug = self.kwargs['slug']
        neighborhood = Neighborhood.objects.filter(slug=slug).first()
        if neighborhood is None:
            raise NotFound('Neighborhood not found')
        return neighborhood

    @action(detail=True, methods=['get'])
    def properties(self, request, slug=None):
        """All properties in the neighborhood (unpaginated)."""
        neighborhood = self.get_object()
        queryset = PropertyFilter(
            request.query_params,
            queryset=neighborhood.properties.select_related('neighborhood').order_by(
                '-display_order', '-created_at'
            ),
        ).qs
        serializer = PropertySerializer(queryset, many=True)
        return Response(serializer.data)


@api_view(['GET'])
def neighborhood_by_id(request, pk):
    """Retrieve a neighborhood by primary key."""
    neighborhood = Neighborhood.objects.filter(pk=pk).first()
    if neighborhood is None:
        raise NotFound('Neighborhood not found')
    return Response(NeighborhoodSerializer(neighborhood).data)


# =============================================================================
# ADMIN PROPERTY VIEWSET
# =============================================================================

class AdminPropertyViewSet(AdminViewSetMixin, viewsets.ModelViewSet):
    """
    Back-office API endpoint for Properties.

    Supports:
    - Unpaginated list (same filters as the public list)
    - Create / retrieve / update / delete
    - Toggling visibility
    - Single and bulk display-order changes
    - Slug regeneration for every property
    """
    queryset = Property.objects.select_related('neighborhood').order_by('-display_order', '-created_at')
    serializer_class = PropertySerializer
    filterset_class = PropertyFilter
    entity_label = 'Property'

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return PropertyDetailSerializer
        return PropertySerializer

    @action(detail=True, methods=['patch'], url_path='toggle-active')
    def toggle_active(self, request, pk=None):
        """Flip the property's is_active flag."""
        prop = self.get_object()
        prop.is_active = not prop.is_active
        prop.save(update_fields=['is_active', 'updated_at'])
        logger.info(f"Property {prop.pk} is_active set to {prop.is_active}")
        return Response(PropertySerializer(prop).data)

    @action(detail=True, methods=['patch'])
    def order(self, request, pk=None):
        """Set the display order of a single property."""
        prop = self.get_object()
        display_order = validate_display_order(request.data.get('display_order'))
        if display_order is None:
            return Response(
                {'message': 'Invalid displayOrder value'},
                status=status.HTTP_400_BAD_REQUEST
            )

        prop.display_order = display_order
        prop.save(update_fields=['display_order', 'updated_at'])
        return Response(PropertySerializer(prop).data)

    @action(detail=False, methods=['post'], url_path='bulk-order')
    def bulk_order(self, request):
        """
        Apply several display-order changes in one transaction.

        Body: {"updates": [{"id": "<uuid>", "display_order": 3}, ...]}
        """
        serializer = BulkOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        updates = [
            OrderUpdate(property_id=str(item['id']), display_order=item['display_order'])
            for item in serializer.validated_data['updates']
        ]
        try:
            updated_count = apply_bulk_order(updates)
        except BusinessLogicError as e:
            return Response({'message': str(e)}, status=status.HTTP_404_NOT_FOUND)

        return Response({'success': True, 'updated_count': updated_count})

    @action(detail=False, methods=['post'], url_path='regenerate-slugs')
    def regenerate_slugs(self, request):
        """Recompute every property slug from its title."""
        result = regenerate_all_slugs()
        return Response({
            'success': True,
            'updated': result.updated,
            'errors': result.errors,
        })


# =============================================================================
# ADMIN NEIGHBORHOOD VIEWSET
# =============================================================================

class AdminNeighborhoodViewSet(AdminViewSetMixin, viewsets.ModelViewSet):
    """Back-office CRUD for Neighborhoods."""
    queryset = Neighborhood.objects.all()
    serializer_class = NeighborhoodSerializer
    filterset_class = NeighborhoodFilter
    entity_label = 'Neighborhood'
