"""
Properties Filters - Brokerage Backend API
Django REST Framework filters for property and neighborhood listings.

Provides filtering capabilities for:
- Classification (property type, listing status)
- Price range and minimum room counts
- Neighborhood
- Visibility flags (featured, active)
"""

from django_filters import rest_framework as filters
from django_filters import CharFilter, NumberFilter, BooleanFilter, UUIDFilter

from .models import Property, Neighborhood


# =============================================================================
# PROPERTY FILTERS
# =============================================================================

class PropertyFilter(filters.FilterSet):
    """
    Listing filters shared by the public and admin property endpoints.

    Room counts are minimums ("2+ bedrooms"), prices are inclusive bounds.
    """

    property_type = CharFilter(
        field_name='property_type',
        lookup_expr='exact',
        help_text='Filter by property type (casa, apartamento, terreno, comercial, condominio)'
    )

    status = CharFilter(
        field_name='status',
        lookup_expr='exact',
        help_text='Filter by listing status (venda, aluguel, ambos, vendido)'
    )

    min_price = NumberFilter(
        field_name='price',
        lookup_expr='gte',
        help_text='Minimum price'
    )

    max_price = NumberFilter(
        field_name='price',
        lookup_expr='lte',
        help_text='Maximum price'
    )

    bedrooms = NumberFilter(
        field_name='bedrooms',
        lookup_expr='gte',
        help_text='Minimum number of bedrooms'
    )

    bathrooms = NumberFilter(
        field_name='bathrooms',
        lookup_expr='gte',
        help_text='Minimum number of bathrooms'
    )

    neighborhood_id = UUIDFilter(
        field_name='neighborhood_id',
        help_text='Filter by neighborhood id'
    )

    is_featured = CharFilter(
        method='filter_is_featured',
        help_text='Only featured properties when "true"'
    )

    is_active = BooleanFilter(
        field_name='is_active',
        help_text='Filter by active flag'
    )

    class Meta:
        model = Property
        fields = [
            'property_type', 'status', 'min_price', 'max_price',
            'bedrooms', 'bathrooms', 'neighborhood_id', 'is_featured', 'is_active',
        ]

    def filter_is_featured(self, queryset, name, value):
        """The featured filter narrows the list; any other value is ignored."""
        if str(value).lower() == 'true':
            return queryset.filter(is_featured=True)
        return queryset


# =============================================================================
# NEIGHBORHOOD FILTERS
# =============================================================================

class NeighborhoodFilter(filters.FilterSet):
    """Name search for the neighborhood list."""

    name = CharFilter(
        field_name='name',
        lookup_expr='icontains',
        help_text='Filter by neighborhood name (partial match)'
    )

    class Meta:
        model = Neighborhood
        fields = ['name']
