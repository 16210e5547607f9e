"""End-to-end pipeline scenarios with fake OCR and ledger."""

import asyncio
import hashlib

import pytest

from certverify import pipeline as pipeline_module
from certverify.errors import ExtractionFailed, NoDocument
from certverify.models import FinalStatus, MatchStatus, PipelineStage
from certverify.pipeline import MISSING_CERT_ID_MESSAGE

from tests.conftest import FailingLedger, FakeLedger

DOCUMENT = b'\x89PNG fake certificate bytes'


def _run(pipeline, data=DOCUMENT, mime_type='image/png'):
    return asyncio.run(pipeline.run(data, mime_type))


class TestScenarioA:
    def test_confirmed_on_chain_is_valid(self, make_pipeline):
        pipeline, _, ledger = make_pipeline(ledger=FakeLedger(verified=True))
        result = _run(pipeline)

        assert result.success is True
        assert result.stage is PipelineStage.DONE
        assert result.verdict.final_status is FinalStatus.VALID
        assert result.match.status is MatchStatus.VALID
        assert result.match.confidence == 100
        assert result.candidate.cert_id == 'ABC-123'
        assert result.content_hash == hashlib.sha256(DOCUMENT).hexdigest()
        assert ledger.calls == [('ABC-123', result.content_hash)]

    def test_values_on_separate_lines_stay_valid(self, make_pipeline):
        text = "Certificate ID: ABC-123\nName: John Doe\nRoll No:\n99\n2023"
        pipeline, _, _ = make_pipeline(text=text)
        result = _run(pipeline)
        assert result.match.confidence == 100
        assert result.verdict.final_status is FinalStatus.VALID

    def test_unconfirmed_on_chain(self, make_pipeline):
        pipeline, _, _ = make_pipeline(ledger=FakeLedger(verified=False))
        result = _run(pipeline)
        assert result.verdict.final_status is FinalStatus.VALID_NO_BLOCKCHAIN
        assert result.chain.verified is False
        assert result.chain.error is None

    def test_ledger_down_degrades(self, make_pipeline):
        pipeline, _, _ = make_pipeline(ledger=FailingLedger())
        result = _run(pipeline)
        assert result.success is True
        assert result.verdict.final_status is FinalStatus.VALID_NO_BLOCKCHAIN
        assert result.chain.error == 'RPC endpoint unreachable'


class TestScenarioB:
    def test_missing_cert_id_short_circuits(self, make_pipeline, monkeypatch):
        def fail_match(*args, **kwargs):
            raise AssertionError('matcher must not run')

        monkeypatch.setattr(pipeline_module, 'match', fail_match)
        pipeline, _, ledger = make_pipeline(text="This is to certify that Jane Roe has completed the course")
        result = _run(pipeline)

        assert result.success is False
        assert result.stage is PipelineStage.NO_CERT_ID
        assert result.message == MISSING_CERT_ID_MESSAGE
        assert result.match is None
        assert result.verdict is None
        assert ledger.calls == []


class TestScenarioC:
    @pytest.mark.parametrize('verified', [True, False])
    def test_id_match_with_all_fields_different_is_invalid(self, make_pipeline, verified):
        text = "Certificate ID: ABC-123\nName: Mary Major\nRoll No: 55\n2019"
        pipeline, _, _ = make_pipeline(text=text, ledger=FakeLedger(verified=verified))
        result = _run(pipeline)
        assert result.match.confidence == 0
        assert result.verdict.final_status is FinalStatus.INVALID


class TestFailures:
    def test_extraction_failure_is_a_terminal_result(self, make_pipeline):
        pipeline, _, ledger = make_pipeline(ocr_error=RuntimeError('corrupt image'))
        result = _run(pipeline)
        assert result.success is False
        assert result.stage is PipelineStage.EXTRACTION_FAILED
        assert 'corrupt image' in result.message
        assert result.content_hash is not None
        assert ledger.calls == []

    def test_explicit_extraction_failed(self, make_pipeline):
        pipeline, _, _ = make_pipeline(ocr_error=ExtractionFailed('Unsupported format: text/plain'))
        result = _run(pipeline)
        assert result.message == 'Unsupported format: text/plain'

    def test_matcher_error_leaves_no_pending_chain_task(self, make_pipeline, monkeypatch):
        def broken_match(*args, **kwargs):
            raise RuntimeError('store corrupted')

        monkeypatch.setattr(pipeline_module, 'match', broken_match)
        pipeline, _, _ = make_pipeline()

        async def scenario():
            with pytest.raises(RuntimeError, match='store corrupted'):
                await pipeline.run(DOCUMENT, 'image/png')
            return [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]

        assert asyncio.run(scenario()) == []

    def test_empty_document_raises(self, make_pipeline):
        pipeline, engine, _ = make_pipeline()
        with pytest.raises(NoDocument):
            _run(pipeline, data=b'')
        assert engine.calls == []


def test_result_serializes_for_the_api(make_pipeline):
    pipeline, _, _ = make_pipeline()
    body = _run(pipeline).to_dict()
    assert body['status'] == 'valid'
    assert body['stage'] == 'done'
    assert body['extracted_data']['roll_no'] == '99'
    assert body['db_result']['record']['course'] == 'Certificate in Data Science'
    assert body['blockchain_result'] == {'verified': True, 'error': None}
    assert body['verdict']['color'] == 'green'
    assert len(body['file_hash']) == 64
