"""
Document upload handling for client, owner and financial records.

Files are validated (count, size, MIME type), renamed to a collision-free
name and saved through Django's default storage under ``documents/``.
"""

import logging
import random
import re
import time
from typing import Any, Dict, List, Optional

from django.core.files.storage import default_storage

from services import DocumentUploadError

logger = logging.getLogger(__name__)

MAX_DOCUMENTS = 10
MAX_DOCUMENT_SIZE = 10 * 1024 * 1024  # 10MB

ALLOWED_DOCUMENT_TYPES = {
    'application/pdf',
    'image/jpeg',
    'image/jpg',
    'image/png',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
}

NO_FILES_MESSAGE = "Nenhum arquivo enviado"
INVALID_TYPE_MESSAGE = (
    "Tipo de arquivo não permitido. Use PDF, imagens (JPG, PNG) ou documentos Word (DOC, DOCX)."
)
TOO_MANY_FILES_MESSAGE = f"Máximo de {MAX_DOCUMENTS} arquivos por envio."
FILE_TOO_LARGE_MESSAGE = "Arquivo muito grande. Tamanho máximo: 10MB."


def sanitize_stem(filename: str) -> str:
    """Filename without extension, restricted to ``[A-Za-z0-9_-]``."""
    stem = filename.rsplit('.', 1)[0] if '.' in filename else filename
    return re.sub(r'[^a-zA-Z0-9_-]', '_', stem) or 'document'


def storage_name_for(filename: str) -> str:
    """``documents/<stem>-<timestamp>-<random>.<ext>``"""
    extension = filename.rsplit('.', 1)[1].lower() if '.' in filename else ''
    suffix = f"{int(time.time() * 1000)}-{random.randint(0, 999999999)}"
    name = f"{sanitize_stem(filename)}-{suffix}"
    if extension:
        name = f"{name}.{extension}"
    return f"documents/{name}"


def validate_documents(files: List[Any]) -> None:
    """
    Check an upload batch before anything is written.

    Raises:
        DocumentUploadError: With the user-facing message
    """
    if not files:
        raise DocumentUploadError(NO_FILES_MESSAGE)
    if len(files) > MAX_DOCUMENTS:
        raise DocumentUploadError(TOO_MANY_FILES_MESSAGE)

    for uploaded in files:
        if uploaded.content_type not in ALLOWED_DOCUMENT_TYPES:
            raise DocumentUploadError(INVALID_TYPE_MESSAGE)
        if uploaded.size > MAX_DOCUMENT_SIZE:
            raise DocumentUploadError(FILE_TOO_LARGE_MESSAGE)


def store_documents(files: List[Any]) -> List[Dict[str, Any]]:
    """
    Validate and save uploaded documents.

    Args:
        files: Django UploadedFile objects

    Returns:
        One ``{url, filename, size, mimetype}`` entry per stored file
    """
    validate_documents(files)

    stored = []
    for uploaded in files:
        saved_name = default_storage.save(storage_name_for(uploaded.name), uploaded)
        stored.append({
            'url': default_storage.url(saved_name),
            'filename': uploaded.name,
            'size': uploaded.size,
            'mimetype': uploaded.content_type,
        })

    logger.info(f"Stored {len(stored)} uploaded document(s)")
    return stored


STORED_NAME_PATTERN = re.compile(r'^[A-Za-z0-9_-][A-Za-z0-9_.-]*$')


def stored_document_name(name: str) -> Optional[str]:
    """
    Storage name for a document requested by file name.

    Returns None for names that could not have been produced by
    ``storage_name_for`` or that are not in storage.
    """
    if not STORED_NAME_PATTERN.match(name) or '..' in name:
        return None
    storage_name = f"documents/{name}"
    if not default_storage.exists(storage_name):
        return None
    return storage_name
