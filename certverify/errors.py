"""Exceptions raised across the verification pipeline."""


class VerificationError(Exception):
    """Base class for request-level verification failures."""

    status_code = 500
    message = 'Verification failed'

    def __init__(self, detail=None):
        self.detail = detail or self.message
        super().__init__(self.detail)


class NoDocument(VerificationError):
    """No file was supplied with the request."""

    status_code = 400
    message = 'No file uploaded'


class UnsupportedDocument(VerificationError):
    """The uploaded file type is not accepted."""

    status_code = 400
    message = 'Only images and PDFs are allowed'


class ExtractionFailed(VerificationError):
    """The OCR engine could not read the document (corrupt file, crash, timeout)."""

    status_code = 500
    message = 'OCR extraction failed'


class LedgerUnavailable(Exception):
    """The ledger could not answer a query. Never escapes ChainVerifier."""
