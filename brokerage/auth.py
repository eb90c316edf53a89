# ===== ADMIN SESSION AUTHENTICATION =====
"""
Session-based authentication for the brokerage back office.

There is a single administrator account whose credentials live in the
environment (LOGIN / SENHA). A successful login (brokerage.views.login)
marks the Django session with ``is_admin = True``; every admin endpoint is
then guarded by ``IsAdminSession``.

This module is loaded by DRF settings while ``rest_framework.views`` is
still importing, so it must only import the authentication and permission
modules.
"""

from django.conf import settings
from rest_framework.authentication import BaseAuthentication
from rest_framework.permissions import BasePermission

SESSION_ADMIN_FLAG = 'is_admin'


class AdminPrincipal:
    """Lightweight user object attached to requests from an admin session."""

    is_authenticated = True
    is_anonymous = False
    is_staff = True

    def __init__(self, session_key=None):
        self.id = 'admin'
        self.pk = self.id
        self.username = settings.ADMIN_LOGIN or 'admin'
        self.session_key = session_key

    def __str__(self):
        return self.username


class AdminSessionAuthentication(BaseAuthentication):
    """
    Authenticate requests whose session carries the admin flag.

    Returns None for everyone else so public endpoints stay reachable.
    """

    def authenticate(self, request):
        session = getattr(request._request, 'session', None)
        if session is None or session.get(SESSION_ADMIN_FLAG) is not True:
            return None
        return (AdminPrincipal(session.session_key), None)

    def authenticate_header(self, request):
        # A non-empty header makes DRF answer 401 instead of 403
        return 'Session'


class IsAdminSession(BasePermission):
    """Allow access only to requests authenticated by an admin session."""

    message = 'Unauthorized'

    def has_permission(self, request, view):
        return isinstance(request.user, AdminPrincipal)


def is_admin_request(request) -> bool:
    """Check the admin flag on a DRF or plain Django request."""
    django_request = getattr(request, '_request', request)
    session = getattr(django_request, 'session', None)
    return bool(session is not None and session.get(SESSION_ADMIN_FLAG) is True)
