"""
Input sanitizing and field validation for assistant messages and the
action payloads the LLM proposes.
"""

import re
from typing import Any, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email

MAX_AMOUNT = 1_000_000_000

SCRIPT_BLOCK = re.compile(r'<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>', re.IGNORECASE)
IFRAME_BLOCK = re.compile(r'<iframe\b[^<]*(?:(?!</iframe>)<[^<]*)*</iframe>', re.IGNORECASE)
OBJECT_BLOCK = re.compile(r'<object\b[^<]*(?:(?!</object>)<[^<]*)*</object>', re.IGNORECASE)
EMBED_TAG = re.compile(r'<embed[^>]*>', re.IGNORECASE)
EVENT_HANDLER = re.compile(r'on\w+\s*=\s*["\'][^"\']*["\']', re.IGNORECASE)
JAVASCRIPT_URL = re.compile(r'javascript:', re.IGNORECASE)
ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')
CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


def sanitize_input(value: Any) -> str:
    """Strip markup that could execute in the admin UI, then whitespace."""
    if not value:
        return ''
    text = str(value)
    for pattern in (SCRIPT_BLOCK, IFRAME_BLOCK, OBJECT_BLOCK, EMBED_TAG, EVENT_HANDLER, JAVASCRIPT_URL):
        text = pattern.sub('', text)
    return text.strip()


def sanitize_email(email: Any) -> Optional[str]:
    """Lower-cased email, or None when missing or malformed."""
    if not email:
        return None
    email = str(email).strip().lower()
    try:
        validate_email(email)
    except DjangoValidationError:
        return None
    return email


def validate_positive_number(value: Any, field_name: str) -> float:
    """
    Parse a non-negative number.

    Raises:
        ValueError: With a Portuguese message naming the field
    """
    if isinstance(value, bool):
        raise ValueError(f"{field_name} deve ser um número válido")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} deve ser um número válido")
    if number != number:
        raise ValueError(f"{field_name} deve ser um número válido")
    if number < 0:
        raise ValueError(f"{field_name} deve ser um valor positivo")
    return number


def is_valid_id(value: Any) -> bool:
    return isinstance(value, str) and bool(ID_PATTERN.match(value))


def snake_case_keys(data: Any) -> Any:
    """Recursively convert camelCase dict keys (``propertyType``) to snake_case."""
    if isinstance(data, dict):
        return {CAMEL_BOUNDARY.sub('_', str(key)).lower(): snake_case_keys(value) for key, value in data.items()}
    if isinstance(data, list):
        return [snake_case_keys(item) for item in data]
    return data
