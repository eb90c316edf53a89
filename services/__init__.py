# ===== SERVICES INTEGRATION LAYER =====
"""
Shared business services for the brokerage backend.

Modules:
- business_logic: slugs, display ordering, listing data fixes
- analytics: dashboard stats and analytics aggregation
- documents: client/owner document upload validation and storage
- media: property image storage from base64 payloads
"""


# =============================================================================
# SERVICE INTEGRATION EXCEPTIONS
# =============================================================================

class ServiceIntegrationError(Exception):
    """Base exception for service errors."""
    pass


class BusinessLogicError(ServiceIntegrationError):
    """Raised when a business rule cannot be applied."""
    pass


class DocumentUploadError(ServiceIntegrationError):
    """Raised when an uploaded document fails validation."""
    pass
