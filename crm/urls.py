"""
URL configuration for CRM app.

Admin Endpoints (admin session required):
- admin/clients/[{id}/]                  - Client CRUD
- admin/clients/{id}/properties/         - Properties of interest (GET, POST)
- admin/clients/{id}/history/            - Contact history (GET, POST)
- admin/owners/[{id}/]                   - Owner CRUD
- admin/owners/{id}/properties/          - Owned properties (GET, POST)
- admin/financials/[{id}/]               - Transaction CRUD (?type, ?start_date, ?end_date)
- admin/financials/summary/              - Totals (GET)

This URLs file gets included by the main project URLs at /api/.
"""

from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import ClientViewSet, OwnerViewSet, FinancialTransactionViewSet


router = SimpleRouter()
router.register(r'admin/clients', ClientViewSet, basename='admin-client')
router.register(r'admin/owners', OwnerViewSet, basename='admin-owner')
router.register(r'admin/financials', FinancialTransactionViewSet, basename='admin-financial')


urlpatterns = [
    path('', include(router.urls)),
]
