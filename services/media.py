"""
Property image storage.

Images arrive either as URLs that are already stored or as base64 payloads
(admin form uploads, assistant attachments). Payloads are written through
Django's default storage under ``properties/<folder>/`` and replaced by
their public URL.
"""

import base64
import binascii
import logging
import re
import time
from typing import Any, List

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage

from services import ServiceIntegrationError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = re.compile(r'^data:(?P<mime>[\w/+.-]+);base64,')
EXTENSIONS_BY_MIME = {
    'image/jpeg': 'jpg',
    'image/jpg': 'jpg',
    'image/png': 'png',
    'image/webp': 'webp',
    'image/gif': 'gif',
}


class MediaStorageError(ServiceIntegrationError):
    """Raised when an image payload cannot be decoded or stored."""
    pass


def folder_name_for(title: str) -> str:
    """Storage folder derived from a property title."""
    folder = re.sub(r'[^a-z0-9]+', '-', (title or '').lower()).strip('-')[:50]
    return folder or f"property-{int(time.time() * 1000)}"


def store_base64_image(base64_data: str, filename: str, folder: str) -> str:
    """
    Decode a base64 (or data URL) image and save it.

    Args:
        base64_data: Raw base64 or ``data:image/...;base64,`` string
        filename: Original filename, used for the extension
        folder: Subfolder under properties/

    Returns:
        Public URL of the stored file

    Raises:
        MediaStorageError: If the payload is not valid base64
    """
    extension = None
    match = DATA_URL_PREFIX.match(base64_data or '')
    if match:
        extension = EXTENSIONS_BY_MIME.get(match.group('mime'))
        base64_data = base64_data[match.end():]

    try:
        content = base64.b64decode(base64_data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MediaStorageError(f"Invalid image data for {filename}: {str(e)}")

    if not content:
        raise MediaStorageError(f"Empty image data for {filename}")

    stem, _, original_extension = (filename or 'image').rpartition('.')
    if not stem:
        stem, original_extension = original_extension, ''
    extension = extension or (original_extension.lower() if original_extension else 'jpg')
    stem = re.sub(r'[^a-zA-Z0-9_-]', '_', stem)[:80] or 'image'

    name = f"properties/{folder}/{stem}-{int(time.time() * 1000)}.{extension}"
    saved_name = default_storage.save(name, ContentFile(content))
    logger.info(f"Stored property image {saved_name}")
    return default_storage.url(saved_name)


def resolve_property_images(images: List[Any], folder: str) -> List[str]:
    """
    Turn a mixed list of URLs and ``{base64_data, filename}`` objects into URLs.

    Entries that are neither are dropped.
    """
    urls = []
    for index, image in enumerate(images or []):
        if isinstance(image, str):
            if image.strip():
                urls.append(image.strip())
        elif isinstance(image, dict) and image.get('base64_data'):
            filename = image.get('filename') or f"image-{index + 1}.jpg"
            urls.append(store_base64_image(image['base64_data'], filename, folder))
    return urls
