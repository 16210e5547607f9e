"""Certificate verification: OCR field extraction, record matching and blockchain attestation."""

__version__ = '1.0.0'
