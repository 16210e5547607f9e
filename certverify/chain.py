"""Blockchain attestation check that degrades instead of failing."""

import asyncio
import logging
from typing import Optional

from certverify.ledger import LedgerClient
from certverify.models import ChainResult

logger = logging.getLogger(__name__)


class ChainVerifier:
    """
    Ask the ledger whether ``(cert_id, content_hash)`` was registered.

    Never raises: network errors, contract reverts and timeouts all come back
    as ``ChainResult(verified=False, error=...)``. No retries.
    """

    def __init__(self, client: LedgerClient, timeout: Optional[float] = None):
        self.client = client
        self.timeout = timeout

    async def verify(self, cert_id: str, content_hash: str) -> ChainResult:
        try:
            # wait_for only stops waiting; the worker thread is bounded by the
            # client's HTTP timeout (Web3LedgerClient request_kwargs)
            verified = await asyncio.wait_for(
                asyncio.to_thread(self.client.verify_certificate, cert_id, content_hash),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            message = f'Ledger query timed out after {self.timeout}s'
            logger.warning('Blockchain verification error for %s: %s', cert_id, message)
            return ChainResult(verified=False, error=message)
        except Exception as e:
            logger.warning('Blockchain verification error for %s: %s', cert_id, e)
            return ChainResult(verified=False, error=str(e) or e.__class__.__name__)
        return ChainResult(verified=bool(verified))
