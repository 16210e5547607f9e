"""
Certificate registry on chain.

``LedgerClient`` is the only thing the pipeline knows about the chain. The
web3 implementation calls the read-only ``verifyCertificate`` function of the
deployed registry contract; registration happens elsewhere.
"""

import hashlib
from typing import Protocol

from web3 import Web3

from certverify.errors import LedgerUnavailable

CONTRACT_ABI = [
    {
        'inputs': [
            {'internalType': 'string', 'name': 'certId', 'type': 'string'},
            {'internalType': 'string', 'name': 'hash', 'type': 'string'},
        ],
        'name': 'registerCertificate',
        'outputs': [],
        'stateMutability': 'nonpayable',
        'type': 'function',
    },
    {
        'inputs': [
            {'internalType': 'string', 'name': 'certId', 'type': 'string'},
            {'internalType': 'string', 'name': 'hash', 'type': 'string'},
        ],
        'name': 'verifyCertificate',
        'outputs': [{'internalType': 'bool', 'name': '', 'type': 'bool'}],
        'stateMutability': 'view',
        'type': 'function',
    },
    {
        'inputs': [{'internalType': 'string', 'name': '', 'type': 'string'}],
        'name': 'certificates',
        'outputs': [{'internalType': 'string', 'name': '', 'type': 'string'}],
        'stateMutability': 'view',
        'type': 'function',
    },
]


def content_hash(data: bytes) -> str:
    """Lowercase hex SHA-256 of the document bytes."""
    return hashlib.sha256(data).hexdigest()


class LedgerClient(Protocol):
    def verify_certificate(self, cert_id: str, content_hash: str) -> bool:
        ...


class Web3LedgerClient:
    """Queries the certificate registry contract over JSON-RPC."""

    def __init__(self, rpc_url: str, contract_address: str, timeout: float = 10):
        self.rpc_url = rpc_url
        self.web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={'timeout': timeout}))
        self.contract = self.web3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=CONTRACT_ABI,
        )

    def verify_certificate(self, cert_id: str, content_hash: str) -> bool:
        try:
            return bool(self.contract.functions.verifyCertificate(cert_id, content_hash).call())
        except Exception as e:
            raise LedgerUnavailable(f'Registry query via {self.rpc_url} failed: {e}') from e
