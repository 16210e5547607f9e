"""
Certificate Verification Service - OCR + Records + Blockchain
==============================================================
Accepts an uploaded certificate (image or PDF), extracts its fields with OCR,
checks them against the reference records and asks the certificate registry
contract whether the document hash was registered.

Run with:  python app.py
"""

import logging
from datetime import datetime

from flask import Flask, current_app, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge

from certverify import config
from certverify.chain import ChainVerifier
from certverify.errors import NoDocument, VerificationError
from certverify.extractor import Extractor
from certverify.ledger import Web3LedgerClient
from certverify.models import PipelineStage
from certverify.ocr import TesseractTextExtractor
from certverify.pipeline import VerificationPipeline
from certverify.records import load_store
from certverify.uploads import resolve_mime_type, stored_upload

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = 'INFO') -> None:
    """Configure logging for the service."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def build_pipeline(app_config) -> VerificationPipeline:
    """Construct the production pipeline: Tesseract OCR, JSON records, web3 registry."""
    text_extractor = TesseractTextExtractor(
        tesseract_cmd=app_config['TESSERACT_CMD'],
        timeout=app_config['OCR_TIMEOUT'],
    )
    ledger = Web3LedgerClient(
        rpc_url=app_config['ETHEREUM_RPC'],
        contract_address=app_config['CONTRACT_ADDRESS'],
        timeout=app_config['LEDGER_TIMEOUT'],
    )
    return VerificationPipeline(
        extractor=Extractor(text_extractor, lang=app_config['OCR_LANG'], timeout=app_config['OCR_TIMEOUT']),
        store=load_store(app_config['SAMPLE_DATA_PATH']),
        chain_verifier=ChainVerifier(ledger, timeout=app_config['LEDGER_TIMEOUT']),
        valid_threshold=app_config['VALID_CONFIDENCE'],
        suspicious_threshold=app_config['SUSPICIOUS_CONFIDENCE'],
    )


def error_response(message, status_code):
    return jsonify({
        'success': False,
        'error': message,
        'message': message,
        'status': None,
    }), status_code


def create_app(pipeline=None, **overrides):
    """
    Application factory.

    Args:
        pipeline: Pre-built VerificationPipeline (tests inject fakes here).
            Built from configuration when omitted.
        overrides: Extra ``app.config`` values.
    """
    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=config.SECRET_KEY,
        UPLOAD_FOLDER=config.UPLOAD_FOLDER,
        MAX_CONTENT_LENGTH=config.MAX_CONTENT_LENGTH,
        SAMPLE_DATA_PATH=config.SAMPLE_DATA_PATH,
        OCR_LANG=config.OCR_LANG,
        OCR_TIMEOUT=config.OCR_TIMEOUT,
        TESSERACT_CMD=config.TESSERACT_CMD,
        CONTRACT_ADDRESS=config.CONTRACT_ADDRESS,
        ETHEREUM_RPC=config.ETHEREUM_RPC,
        LEDGER_TIMEOUT=config.LEDGER_TIMEOUT,
        VALID_CONFIDENCE=config.VALID_CONFIDENCE,
        SUSPICIOUS_CONFIDENCE=config.SUSPICIOUS_CONFIDENCE,
    )
    app.config.update(overrides)

    if pipeline is None:
        pipeline = build_pipeline(app.config)
    app.extensions['verification_pipeline'] = pipeline

    register_routes(app)
    return app


# ============================================================================
# FLASK ROUTES
# ============================================================================

def register_routes(app):

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(e):
        limit_mb = current_app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)
        return error_response(f'File too large. Maximum size is {limit_mb}MB', 413)

    @app.route('/health', methods=['GET'])
    def health():
        pipeline = current_app.extensions['verification_pipeline']
        return jsonify({
            'status': 'OK',
            'timestamp': datetime.now().isoformat(),
            'records': len(pipeline.store),
        })

    @app.route('/verify', methods=['POST'])
    async def verify_certificate():
        """
        Verify one uploaded certificate.

        Expected Parameters:
        - certificate (or file): Image or PDF (JPG, JPEG, PNG, TIFF, WEBP, PDF)

        Returns:
            JSON response with:
            - success: False for missing ID / OCR failure, True otherwise
            - status: valid / valid_no_blockchain / suspicious / invalid
            - message: Human-readable outcome
            - stage: Terminal pipeline stage
            - extracted_data, db_result, blockchain_result, verdict, file_hash
        """
        pipeline = current_app.extensions['verification_pipeline']
        upload = request.files.get('certificate') or request.files.get('file')
        try:
            if upload is None or upload.filename == '':
                raise NoDocument()
            mime_type = resolve_mime_type(upload.filename, upload.mimetype)

            with stored_upload(upload, current_app.config['UPLOAD_FOLDER']) as temp_path:
                with open(temp_path, 'rb') as f:
                    data = f.read()
                result = await pipeline.run(data, mime_type)

        except VerificationError as e:
            logger.info('Verification rejected: %s', e.detail)
            return error_response(e.detail, e.status_code)
        except Exception as e:
            logger.exception('Verification error')
            return error_response(f'Processing error: {e}', 500)

        body = result.to_dict()
        if result.stage is PipelineStage.EXTRACTION_FAILED:
            body['error'] = result.message
            return jsonify(body), 500
        if not result.success:
            body['error'] = result.message
        return jsonify(body)

    @app.route('/upload', methods=['POST'])
    async def upload_file():
        """Alias of /verify for older clients."""
        return await verify_certificate()


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == '__main__':
    setup_logging(config.LOG_LEVEL)
    print("=" * 60)
    print("Certificate Verification Service - Starting...")
    print("=" * 60)
    print("\nMake sure Tesseract OCR is installed and in your system PATH.")
    print(f"Registry contract: {config.CONTRACT_ADDRESS} via {config.ETHEREUM_RPC}")
    print(f"\nServer will start at: http://127.0.0.1:{config.PORT}")
    print("=" * 60)

    app = create_app()
    app.run(debug=True, host='0.0.0.0', port=config.PORT)
