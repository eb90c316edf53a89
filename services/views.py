"""
Back-office service endpoints: dashboard stats and analytics, listing data
fixes and document uploads.
"""

import logging

from django.core.files.storage import default_storage
from django.http import FileResponse, Http404

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.exceptions import ValidationError
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response

from brokerage.auth import IsAdminSession
from services import DocumentUploadError
from services.analytics import admin_stats, admin_analytics
from services.business_logic import fix_condominium_types, fix_neighborhood_names
from services.documents import store_documents, stored_document_name

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-cache, no-store, must-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0',
}


# =============================================================================
# DASHBOARD
# =============================================================================

@api_view(['GET'])
@permission_classes([IsAdminSession])
def stats(request):
    """Entity counts for the dashboard."""
    return Response(admin_stats())


@api_view(['GET'])
@permission_classes([IsAdminSession])
def analytics(request):
    """Dashboard analytics; never cached."""
    return Response(admin_analytics(), headers=NO_CACHE_HEADERS)


# =============================================================================
# DATA FIXES
# =============================================================================

@api_view(['POST'])
@permission_classes([IsAdminSession])
def fix_condominiums(request):
    """Retype condominium listings."""
    return Response(fix_condominium_types())


@api_view(['POST'])
@permission_classes([IsAdminSession])
def fix_neighborhoods(request):
    """Correct neighborhood spellings and assignments."""
    return Response(fix_neighborhood_names())


# =============================================================================
# DOCUMENT UPLOADS
# =============================================================================

@api_view(['POST'])
@permission_classes([IsAdminSession])
@parser_classes([MultiPartParser, FormParser])
def upload_documents(request):
    """
    Store up to 10 documents sent as multipart field ``documents``.

    Returns:
        List of {url, filename, size, mimetype}
    """
    try:
        stored = store_documents(request.FILES.getlist('documents'))
    except DocumentUploadError as e:
        raise ValidationError(str(e))

    return Response(stored, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsAdminSession])
def serve_document(request, name):
    """Stream a stored document back to the admin."""
    storage_name = stored_document_name(name)
    if storage_name is None:
        raise Http404("Document not found")
    return FileResponse(default_storage.open(storage_name, 'rb'), filename=name)
