"""
URL configuration for the brokerage project.

The `urlpatterns` list routes URLs to views. Public endpoints sit directly
under /api/, back-office endpoints under /api/admin/ and require an admin
session (see brokerage.auth and brokerage.views).
"""

import sys

from django.conf import settings
from django.contrib import admin
from django.db import connection
from django.http import JsonResponse
from django.urls import path, include
from django.utils import timezone
from django.views.decorators.cache import cache_control
from django.views.decorators.http import require_http_methods

from brokerage import views as auth_views
from services import views as service_views


# =============================================================================
# HEALTH CHECK ENDPOINT
# =============================================================================

@require_http_methods(["GET"])
@cache_control(no_cache=True, must_revalidate=True, no_store=True)
def health_check(request):
    """
    Health check endpoint for deployment monitoring.

    Returns:
        JSON response with system status and database connectivity
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")

        response_data = {
            "status": "healthy",
            "database": "connected",
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}",
            "timestamp": timezone.now().isoformat(),
        }
        return JsonResponse(response_data, status=200)

    except Exception as e:
        # Don't expose details in production
        error_response = {
            "status": "unhealthy",
            "database": "error",
            "error": str(e) if settings.DEBUG else "Database connection failed"
        }
        return JsonResponse(error_response, status=503)


# =============================================================================
# API INFO ENDPOINT
# =============================================================================

@require_http_methods(["GET"])
def api_info(request):
    """
    API information endpoint for frontend integration.

    Returns:
        JSON response with API version, available endpoints and data counts
    """
    api_info_data = {
        "api_name": "Brokerage API",
        "version": "1.0",
        "description": "Real estate brokerage site and back office",
        "endpoints": {
            "authentication": {
                "login": "/api/auth/login/",
                "check": "/api/auth/check/",
                "logout": "/api/auth/logout/",
            },
            "public": {
                "properties": "/api/properties/",
                "property_detail": "/api/properties/{id_or_slug}/",
                "similar_properties": "/api/properties/{id_or_slug}/similar/",
                "neighborhoods": "/api/neighborhoods/",
                "banners": "/api/banners/",
                "about": "/api/about/",
                "settings": "/api/settings/",
                "contact": "/api/contact-messages/",
            },
            "admin": {
                "properties": "/api/admin/properties/",
                "neighborhoods": "/api/admin/neighborhoods/",
                "clients": "/api/admin/clients/",
                "owners": "/api/admin/owners/",
                "financials": "/api/admin/financials/",
                "stats": "/api/admin/stats/",
                "analytics": "/api/admin/analytics/",
                "intelligence": "/api/admin/intelligence/chat/",
                "documents": "/api/uploads/documents/",
            },
            "utilities": {
                "health": "/api/health/",
            }
        },
        "data_stats": {
            "total_properties": None,
            "total_neighborhoods": None,
        }
    }

    try:
        from properties.models import Property, Neighborhood
        api_info_data["data_stats"]["total_properties"] = Property.objects.count()
        api_info_data["data_stats"]["total_neighborhoods"] = Neighborhood.objects.count()
    except Exception:
        # Database not ready
        pass

    return JsonResponse(api_info_data)


# =============================================================================
# MAIN URL PATTERNS
# =============================================================================

urlpatterns = [
    # Django Admin Interface
    path('admin/', admin.site.urls),

    # Health and System Status
    path('api/health/', health_check, name='health-check'),
    path('api/info/', api_info, name='api-info'),

    # Session Authentication
    path('api/auth/login/', auth_views.login, name='auth-login'),
    path('api/auth/check/', auth_views.check, name='auth-check'),
    path('api/auth/logout/', auth_views.logout, name='auth-logout'),

    # Core Application Endpoints
    path('api/', include('properties.urls')),
    path('api/', include('content.urls')),
    path('api/', include('crm.urls')),
    path('api/', include('services.urls')),
    path('api/admin/intelligence/', include('intelligence.urls')),

    # Uploaded documents (admin only; listing images stay public)
    path('uploads/documents/<str:name>', service_views.serve_document, name='serve-document'),

    # API Root
    path('api/', api_info, name='api-root'),
]


# =============================================================================
# DEVELOPMENT URL PATTERNS
# =============================================================================

if settings.DEBUG:
    from django.conf.urls.static import static

    # Serve uploaded files in development
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)


# =============================================================================
# CUSTOM ERROR HANDLERS
# =============================================================================

def custom_404_handler(request, exception):
    """Custom 404 handler for API endpoints"""
    if request.path.startswith('/api/'):
        return JsonResponse({
            'message': f'The requested endpoint {request.path} does not exist',
        }, status=404)

    from django.views.defaults import page_not_found
    return page_not_found(request, exception)


def custom_500_handler(request):
    """Custom 500 handler for API endpoints"""
    if request.path.startswith('/api/'):
        return JsonResponse({
            'message': 'Internal server error',
        }, status=500)

    from django.views.defaults import server_error
    return server_error(request)


handler404 = custom_404_handler
handler500 = custom_500_handler


# =============================================================================
# URL PATTERN ORGANIZATION NOTES
# =============================================================================

"""
URL Structure Overview:
========================

/admin/                              - Django admin interface
/api/health/                         - Health check
/api/info/                           - API information
/api/auth/{login,check,logout}/      - Admin session authentication
/api/properties/                     - Public property listing (paginated)
/api/neighborhoods/                  - Public neighborhoods
/api/banners/, /api/about/           - Site content
/api/settings/                       - Public site settings
/api/contact-messages/               - Contact form
/api/admin/...                       - Back-office CRUD, stats and analytics
/api/admin/intelligence/...          - AI assistant (chat, execute, audit logs)
/api/uploads/documents/              - Client/owner document upload
/uploads/documents/{name}            - Stored document download (admin)

Frontend Integration Notes:
==========================

1. Admin endpoints require the session cookie set by /api/auth/login/
2. CORS allows credentials for the configured frontend origins
3. Every error response is {"message": ...}
"""
