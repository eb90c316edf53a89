# ===== INTELLIGENCE RATE LIMIT MIDDLEWARE =====
"""
Rate limiting middleware for the intelligence assistant endpoints.

The chat and execute endpoints call an external LLM and mutate data, so both
are throttled per admin session (falling back to client IP). Limit tracking,
spam detection and temporary blocks live in ``intelligence.rate_limiter``;
this middleware only maps HTTP requests onto it and decorates responses with
the ``X-RateLimit-*`` headers.
"""

import json
import logging
from typing import Optional

from django.conf import settings
from django.http import JsonResponse

from brokerage.auth import is_admin_request
from intelligence.rate_limiter import rate_limiter, CHAT, EXECUTE

logger = logging.getLogger(__name__)


class IntelligenceRateLimitMiddleware:
    """
    Apply the intelligence rate limits to POST chat / execute requests.

    Non-admin requests pass straight through; the views reject them with 401.
    """

    def __init__(self, get_response):
        self.get_response = get_response

        # Endpoint prefix -> limiter bucket
        self.rate_limits = {
            '/api/admin/intelligence/chat': CHAT,
            '/api/admin/intelligence/execute': EXECUTE,
        }

    def __call__(self, request):
        endpoint = self._get_endpoint(request)
        if endpoint is None:
            return self.get_response(request)

        user_id = self._get_user_identifier(request)
        message = self._get_message(request) if endpoint == CHAT else None

        decision = rate_limiter.check(user_id, endpoint, message)
        if not decision.allowed:
            response = JsonResponse({'message': decision.message}, status=decision.status_code)
            for header, value in decision.headers.items():
                response[header] = value
            return response

        response = self.get_response(request)
        for header, value in decision.headers.items():
            response[header] = value
        return response

    def _get_endpoint(self, request) -> Optional[str]:
        """Match request path to a configured limiter bucket."""
        if request.method != 'POST':
            return None
        if not getattr(settings, 'INTELLIGENCE_RATE_LIMIT_ENABLED', True):
            return None
        if not is_admin_request(request):
            return None
        for prefix, endpoint in self.rate_limits.items():
            if request.path.startswith(prefix):
                return endpoint
        return None

    def _get_user_identifier(self, request) -> str:
        """Get unique identifier for rate limiting."""
        session_key = getattr(request, 'session', None) and request.session.session_key
        if session_key:
            return f"session_{session_key}"

        # Use IP when the session has no key yet
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = x_forwarded_for.split(',')[0].strip()
        else:
            ip = request.META.get('REMOTE_ADDR', 'unknown')

        return f"ip_{ip}"

    def _get_message(self, request) -> Optional[str]:
        """Extract the chat message from a JSON request body."""
        try:
            payload = json.loads(request.body or b'{}')
        except (ValueError, UnicodeDecodeError):
            return None
        if not isinstance(payload, dict):
            return None
        message = payload.get('message')
        return message if isinstance(message, str) else None
