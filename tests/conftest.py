"""Shared test fixtures: fake OCR engine, fake ledgers and a small record store."""

import pytest

from certverify.chain import ChainVerifier
from certverify.extractor import Extractor
from certverify.pipeline import VerificationPipeline
from certverify.records import build_store

SCENARIO_A_TEXT = "Certificate ID: ABC-123\nName: John Doe\nRoll No: 99\n2023"


class FakeTextExtractor:
    """Returns canned text, or raises, and records every call."""

    def __init__(self, text='', error=None):
        self.text = text
        self.error = error
        self.calls = []

    def extract_text(self, data, mime_type, lang='eng'):
        self.calls.append((data, mime_type, lang))
        if self.error is not None:
            raise self.error
        return self.text


class FakeLedger:
    def __init__(self, verified=True):
        self.verified = verified
        self.calls = []

    def verify_certificate(self, cert_id, content_hash):
        self.calls.append((cert_id, content_hash))
        return self.verified


class FailingLedger:
    def __init__(self, error=None):
        self.error = error or ConnectionError('RPC endpoint unreachable')
        self.calls = 0

    def verify_certificate(self, cert_id, content_hash):
        self.calls += 1
        raise self.error


@pytest.fixture
def reference_rows():
    return [
        {
            'cert_id': 'ABC-123',
            'name': 'John Doe',
            'roll_no': '99',
            'year': '2023',
            'course': 'Certificate in Data Science',
        },
        {
            'cert_id': 'CERT-2023-001',
            'name': 'Aarav Sharma',
            'roll_no': '21CS101',
            'year': '2023',
        },
    ]


@pytest.fixture
def store(reference_rows):
    return build_store(reference_rows)


@pytest.fixture
def make_pipeline(store):
    """Build a pipeline around a fake OCR text and ledger."""

    def _make(text=SCENARIO_A_TEXT, ledger=None, ocr_error=None):
        text_extractor = FakeTextExtractor(text=text, error=ocr_error)
        ledger = ledger if ledger is not None else FakeLedger(verified=True)
        pipeline = VerificationPipeline(
            extractor=Extractor(text_extractor, timeout=5),
            store=store,
            chain_verifier=ChainVerifier(ledger, timeout=5),
        )
        return pipeline, text_extractor, ledger

    return _make
