"""
Project-wide REST API exception handler.

Every API error leaves the server as a flat ``{"message": ...}`` object so
the public site and the admin panel can show it directly. Validation errors
keep their field breakdown under ``errors``.
"""

import logging

from rest_framework import exceptions, status
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def first_error_message(detail):
    """Walk a DRF error detail structure and return its first message."""
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = first_error_message(value)
            if message:
                if key in ('non_field_errors', 'detail', 'message'):
                    return message
                return f"{key}: {message}"
        return ''
    if isinstance(detail, (list, tuple)):
        for item in detail:
            message = first_error_message(item)
            if message:
                return message
        return ''
    return str(detail)


def api_exception_handler(exc, context):
    """
    Reshape DRF error responses into the ``{"message": ...}`` envelope.

    Unhandled exceptions are left to Django (and the JSON 500 handler).
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.NotAuthenticated) or response.status_code == status.HTTP_401_UNAUTHORIZED:
        response.data = {'message': 'Unauthorized'}
        return response

    if isinstance(exc, exceptions.ValidationError):
        response.data = {
            'message': first_error_message(exc.detail) or 'Invalid request',
            'errors': exc.detail,
        }
        return response

    if isinstance(response.data, dict) and 'detail' in response.data:
        response.data = {'message': str(response.data['detail'])}
    elif not isinstance(response.data, dict) or 'message' not in response.data:
        response.data = {'message': first_error_message(response.data)}

    if response.status_code >= 500:
        logger.error(f"API error: {response.data['message']}")

    return response
