# ===== ADMIN SESSION ENDPOINTS =====
"""
Login, session check and logout for the back-office administrator.

Endpoints:
    POST /api/auth/login/   - {username, password} -> {success: true}
    GET  /api/auth/check/   - {isAdmin: bool}
    POST /api/auth/logout/  - {success: true}
"""

import logging
import hmac

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .auth import SESSION_ADMIN_FLAG, is_admin_request

logger = logging.getLogger(__name__)


def _credentials_match(username: str, password: str) -> bool:
    """Constant-time comparison against the configured admin credentials."""
    expected_login = settings.ADMIN_LOGIN
    expected_password = settings.ADMIN_PASSWORD
    if not expected_login or not expected_password:
        logger.error("Admin credentials are not configured (LOGIN / SENHA)")
        return False
    return (
        hmac.compare_digest(str(username).encode(), expected_login.encode())
        and hmac.compare_digest(str(password).encode(), expected_password.encode())
    )


@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """
    Log the administrator in.

    The session key is cycled before the admin flag is stored so a
    pre-login session id can never be promoted.
    """
    username = request.data.get('username', '')
    password = request.data.get('password', '')

    if not _credentials_match(username, password):
        logger.warning("Failed admin login attempt")
        return Response(
            {'message': 'Invalid credentials'},
            status=status.HTTP_401_UNAUTHORIZED
        )

    session = request._request.session
    session.cycle_key()
    session[SESSION_ADMIN_FLAG] = True
    session.save()

    logger.info("Admin logged in")
    return Response({'success': True})


@api_view(['GET'])
@permission_classes([AllowAny])
def check(request):
    """Report whether the current session is an admin session."""
    return Response({'isAdmin': is_admin_request(request)})


@api_view(['POST'])
@permission_classes([AllowAny])
def logout(request):
    """Destroy the current session."""
    request._request.session.flush()
    return Response({'success': True})
