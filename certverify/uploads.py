"""Upload validation and request-scoped temporary storage."""

import logging
import os
import uuid
from contextlib import contextmanager

from werkzeug.utils import secure_filename

from certverify.errors import NoDocument, UnsupportedDocument

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {'pdf', 'jpg', 'jpeg', 'png', 'tiff', 'tif', 'webp'}
EXTENSION_TO_MIME = {
    'pdf': 'application/pdf',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'tiff': 'image/tiff',
    'tif': 'image/tiff',
    'webp': 'image/webp',
}


def get_file_extension(filename):
    """Get lowercase extension without dot."""
    if filename and '.' in filename:
        return filename.rsplit('.', 1)[1].lower()
    return ''


def resolve_mime_type(filename, declared_mime=None):
    """
    Validate an upload and return the MIME type to hand to OCR.

    Both the extension and the declared MIME type must be supported, and they
    must agree (e.g. a ``.pdf`` declared as ``image/png`` is rejected).
    """
    ext = get_file_extension(filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedDocument()
    expected = EXTENSION_TO_MIME[ext]
    declared = (declared_mime or '').lower()
    if declared in ('image/jpg',):
        declared = 'image/jpeg'
    if declared and declared != 'application/octet-stream' and declared != expected:
        raise UnsupportedDocument(f'File type {declared} does not match extension .{ext}')
    return expected


@contextmanager
def stored_upload(file_storage, upload_folder):
    """
    Save an uploaded file under a unique temporary name and yield its path.

    The file is removed when the block exits, whether processing succeeded or
    raised.
    """
    if file_storage is None or not file_storage.filename:
        raise NoDocument()

    os.makedirs(upload_folder, exist_ok=True)
    filename = secure_filename(file_storage.filename) or 'upload'
    temp_path = os.path.join(upload_folder, f'temp_{uuid.uuid4().hex}_{filename}')
    file_storage.save(temp_path)
    try:
        yield temp_path
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)
            logger.debug('Removed temporary upload %s', temp_path)
