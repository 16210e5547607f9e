"""
Verification pipeline: OCR extraction, record matching, chain check, verdict.

Stages per request::

    received -> extracting -> extraction_failed | no_cert_id | extracted
             -> matching + chain_checking (concurrent) -> composing -> done

Every terminal stage produces a ``VerificationResult``; only a missing
document raises.
"""

import asyncio
import logging

from certverify import config
from certverify.chain import ChainVerifier
from certverify.errors import ExtractionFailed, NoDocument
from certverify.extractor import Extractor
from certverify.ledger import content_hash
from certverify.matcher import match
from certverify.models import PipelineStage, VerificationResult
from certverify.records import RecordStore
from certverify.verdict import compose

logger = logging.getLogger(__name__)

MISSING_CERT_ID_MESSAGE = 'Could not extract certificate ID from the document'


class VerificationPipeline:
    """
    Wires the pipeline components together.

    All collaborators are injected so tests can swap in fakes; the record
    store is never written to.
    """

    def __init__(self, extractor: Extractor, store: RecordStore, chain_verifier: ChainVerifier,
                 valid_threshold: float = config.VALID_CONFIDENCE,
                 suspicious_threshold: float = config.SUSPICIOUS_CONFIDENCE):
        self.extractor = extractor
        self.store = store
        self.chain_verifier = chain_verifier
        self.valid_threshold = valid_threshold
        self.suspicious_threshold = suspicious_threshold

    @staticmethod
    def _enter(stage: PipelineStage, file_hash: str) -> PipelineStage:
        logger.debug('[%s] %s', file_hash[:12], stage.value)
        return stage

    async def run(self, data: bytes, mime_type: str) -> VerificationResult:
        if not data:
            raise NoDocument()

        file_hash = content_hash(data)
        self._enter(PipelineStage.RECEIVED, file_hash)
        logger.info('Processing %s document, hash %s', mime_type, file_hash)

        self._enter(PipelineStage.EXTRACTING, file_hash)
        try:
            candidate = await self.extractor.extract(data, mime_type)
        except ExtractionFailed as e:
            logger.error('Extraction failed for %s: %s', file_hash, e.detail)
            return VerificationResult(
                success=False,
                stage=self._enter(PipelineStage.EXTRACTION_FAILED, file_hash),
                message=e.detail,
                content_hash=file_hash,
            )

        if not candidate.cert_id:
            logger.info('No certificate ID found in %s', file_hash)
            return VerificationResult(
                success=False,
                stage=self._enter(PipelineStage.NO_CERT_ID, file_hash),
                message=MISSING_CERT_ID_MESSAGE,
                content_hash=file_hash,
                candidate=candidate,
            )
        self._enter(PipelineStage.EXTRACTED, file_hash)

        # The chain check does not depend on the match, so it runs alongside it
        self._enter(PipelineStage.CHAIN_CHECKING, file_hash)
        chain_task = asyncio.ensure_future(self.chain_verifier.verify(candidate.cert_id, file_hash))

        self._enter(PipelineStage.MATCHING, file_hash)
        try:
            db_result = match(candidate, self.store, self.valid_threshold, self.suspicious_threshold)
        except BaseException:
            chain_task.cancel()
            await asyncio.gather(chain_task, return_exceptions=True)
            raise
        self._enter(PipelineStage.MATCHED, file_hash)

        chain_result = await chain_task
        self._enter(PipelineStage.CHAIN_CHECKED, file_hash)

        self._enter(PipelineStage.COMPOSING, file_hash)
        verdict = compose(db_result, chain_result)

        logger.info(
            'Verified %s: %s (db=%s, confidence=%.1f, blockchain=%s)',
            candidate.cert_id, verdict.final_status.value, db_result.status.value,
            db_result.confidence, chain_result.verified,
        )
        return VerificationResult(
            success=True,
            stage=self._enter(PipelineStage.DONE, file_hash),
            message=verdict.label,
            content_hash=file_hash,
            candidate=candidate,
            match=db_result,
            chain=chain_result,
            verdict=verdict,
        )
