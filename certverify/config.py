"""
Runtime configuration for the certificate verification service.

Every value can be overridden through the environment; the Flask app factory
copies these into ``app.config`` so request handlers read one source.
"""

import os

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

SECRET_KEY = os.environ.get('FLASK_SECRET_KEY', 'dev-secret-change-me')
UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(BASE_DIR, 'uploads'))
MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', 10 * 1024 * 1024))  # 10MB
SAMPLE_DATA_PATH = os.environ.get('SAMPLE_DATA_PATH', os.path.join(BASE_DIR, 'sample_data.json'))

# ============================================================================
# OCR
# ============================================================================
OCR_LANG = os.environ.get('OCR_LANG', 'eng')
OCR_TIMEOUT = float(os.environ.get('OCR_TIMEOUT', 60))
# Windows installs usually need this, e.g. r'C:\Program Files\Tesseract-OCR\tesseract.exe'
TESSERACT_CMD = os.environ.get('TESSERACT_CMD')

# ============================================================================
# BLOCKCHAIN
# ============================================================================
CONTRACT_ADDRESS = os.environ.get('CONTRACT_ADDRESS', '0x1234567890abcdef1234567890abcdef12345678')
ETHEREUM_RPC = os.environ.get('ETHEREUM_RPC', 'https://rpc-mumbai.maticvigil.com/')
LEDGER_TIMEOUT = float(os.environ.get('LEDGER_TIMEOUT', 10))

# ============================================================================
# MATCHING POLICY
# ============================================================================
# confidence >= VALID_CONFIDENCE -> valid
# SUSPICIOUS_CONFIDENCE <= confidence < VALID_CONFIDENCE -> suspicious
VALID_CONFIDENCE = float(os.environ.get('VALID_CONFIDENCE', 80))
SUSPICIOUS_CONFIDENCE = float(os.environ.get('SUSPICIOUS_CONFIDENCE', 50))

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
PORT = int(os.environ.get('PORT', 5000))
