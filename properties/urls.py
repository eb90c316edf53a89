"""
URL configuration for properties app.

This module defines the URL routing for properties and neighborhoods.
Uses Django REST Framework's router system for automatic ViewSet URL
generation with custom actions.

URL Structure Generated:
========================

Public Endpoints:
- properties/                              - Paginated property list (GET)
- properties/{id_or_slug}/                 - Property detail (GET)
- properties/{id_or_slug}/similar/         - Similar properties (GET)
- neighborhoods/                           - Neighborhood list (GET)
- neighborhoods/id/{uuid}/                 - Neighborhood by id (GET)
- neighborhoods/{slug}/                    - Neighborhood by slug (GET)
- neighborhoods/{slug}/properties/         - Properties in a neighborhood (GET)

Admin Endpoints (admin session required):
- admin/properties/                        - List/create (GET, POST)
- admin/properties/{id}/                   - Detail/update/delete (GET, PUT, PATCH, DELETE)
- admin/properties/{id}/toggle-active/     - Flip visibility (PATCH)
- admin/properties/{id}/order/             - Set display order (PATCH)
- admin/properties/bulk-order/             - Bulk display order (POST)
- admin/properties/regenerate-slugs/       - Recompute slugs (POST)
- admin/neighborhoods/                     - List/create (GET, POST)
- admin/neighborhoods/{id}/                - Detail/update/delete

This URLs file gets included by the main project URLs at /api/.
"""

from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import (
    AdminNeighborhoodViewSet,
    AdminPropertyViewSet,
    NeighborhoodViewSet,
    PropertyViewSet,
    neighborhood_by_id,
)


# =============================================================================
# ROUTER CONFIGURATION
# =============================================================================

# SimpleRouter: several app routers share the /api/ prefix, so none of them
# may claim the API root.
router = SimpleRouter()

router.register(r'properties', PropertyViewSet, basename='property')
router.register(r'neighborhoods', NeighborhoodViewSet, basename='neighborhood')
router.register(r'admin/properties', AdminPropertyViewSet, basename='admin-property')
router.register(r'admin/neighborhoods', AdminNeighborhoodViewSet, basename='admin-neighborhood')


# =============================================================================
# MAIN URL PATTERNS
# =============================================================================

urlpatterns = [
    path('neighborhoods/id/<uuid:pk>/', neighborhood_by_id, name='neighborhood-by-id'),
    path('', include(router.urls)),
]
