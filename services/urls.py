"""
URL configuration for back-office services.

Admin Endpoints (admin session required):
- admin/stats/                     - Entity counts (GET)
- admin/analytics/                 - Dashboard analytics (GET, not cached)
- admin/fix-condominium-types/     - Retype condominium listings (POST)
- admin/fix-neighborhoods/         - Correct neighborhood names (POST)
- uploads/documents/               - Document upload (POST, multipart)

Stored documents are downloaded from /uploads/documents/{name} (see
services.views.serve_document, routed by the project URLs).

This URLs file gets included by the main project URLs at /api/.
"""

from django.urls import path

from . import views


urlpatterns = [
    path('admin/stats/', views.stats, name='admin-stats'),
    path('admin/analytics/', views.analytics, name='admin-analytics'),
    path('admin/fix-condominium-types/', views.fix_condominiums, name='admin-fix-condominium-types'),
    path('admin/fix-neighborhoods/', views.fix_neighborhoods, name='admin-fix-neighborhoods'),
    path('uploads/documents/', views.upload_documents, name='upload-documents'),
]
