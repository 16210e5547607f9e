"""
Text recognition for uploaded certificates.

The pipeline only depends on the ``TextExtractor`` protocol: given document
bytes, produce one text blob or raise ``ExtractionFailed``. The Tesseract
implementation below is the one used in production.
"""

import io
import logging
from typing import Optional, Protocol

import cv2
import fitz  # PyMuPDF for PDF text extraction
import numpy as np
import pytesseract
from PIL import Image

from certverify.errors import ExtractionFailed

logger = logging.getLogger(__name__)

# PSM 6: assume a uniform block of text
TESSERACT_CONFIG = r'--oem 3 --psm 6'

# Pages with less text than this are treated as scanned and rasterized for OCR
MIN_TEXT_LAYER_CHARS = 50

MIME_TO_EXTENSION = {
    'application/pdf': 'pdf',
    'image/jpeg': 'jpeg',
    'image/jpg': 'jpg',
    'image/png': 'png',
    'image/tiff': 'tiff',
    'image/webp': 'webp',
}


class TextExtractor(Protocol):
    def extract_text(self, data: bytes, mime_type: str, lang: str = 'eng') -> str:
        ...


def preprocess_image(data: bytes):
    """
    Preprocess certificate image bytes for better OCR accuracy.

    Steps:
    1. Decode image
    2. Convert to grayscale
    3. Apply adaptive thresholding (binary)

    Returns:
        numpy.ndarray: Preprocessed image array
    """
    img = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError('Could not decode image data')

    gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)

    # Adaptive thresholding copes with uneven lighting on photographed certificates
    thresh = cv2.adaptiveThreshold(
        gray, 255, cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
        cv2.THRESH_BINARY, 11, 2
    )
    return thresh


class TesseractTextExtractor:
    """Tesseract OCR with OpenCV preprocessing and PyMuPDF for PDFs."""

    def __init__(self, tesseract_cmd: Optional[str] = None, timeout: float = 0):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        # pytesseract treats 0 as "no timeout"
        self.timeout = timeout

    def extract_text(self, data: bytes, mime_type: str, lang: str = 'eng') -> str:
        """Normalize a document to text: PDF -> PDF extraction; image -> image OCR."""
        ext = MIME_TO_EXTENSION.get((mime_type or '').lower())
        if ext is None:
            raise ExtractionFailed(f'Unsupported format: {mime_type}')
        try:
            if ext == 'pdf':
                return self._pdf_to_text(data, lang)
            return self._image_to_text(data, ext, lang)
        except ExtractionFailed:
            raise
        except Exception as e:
            logger.error('OCR engine error on %s document: %s', ext, e)
            raise ExtractionFailed(f'OCR extraction failed: {e}') from e

    def _ocr(self, image, lang):
        return pytesseract.image_to_string(
            image, lang=lang, config=TESSERACT_CONFIG, timeout=self.timeout
        )

    def _image_to_text(self, data, ext, lang):
        if ext in ('tiff', 'webp'):
            # PIL reads TIFF/WebP; OpenCV decoding is unreliable for both
            pil_img = Image.open(io.BytesIO(data))
            if pil_img.mode != 'RGB':
                pil_img = pil_img.convert('RGB')
            text = self._ocr(pil_img, lang)
        else:
            text = self._ocr(preprocess_image(data), lang)
        return (text or '').strip()

    def _pdf_to_text(self, data, lang):
        """Text layer first; if a page has minimal text, render it to an image and OCR it."""
        doc = fitz.open(stream=data, filetype='pdf')
        try:
            text_parts = []
            for page in doc:
                text = (page.get_text() or '').strip()
                if len(text) < MIN_TEXT_LAYER_CHARS:
                    pix = page.get_pixmap(matrix=fitz.Matrix(2.0, 2.0), alpha=False)
                    text = self._image_to_text(pix.tobytes('png'), 'png', lang)
                text_parts.append(text)
            return '\n\n'.join(text_parts).strip()
        finally:
            doc.close()
