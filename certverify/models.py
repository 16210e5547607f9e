"""
Value types passed between pipeline stages.

All of them are computed fresh per request and never persisted. ``to_dict``
gives the JSON shape returned by the HTTP layer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


class MatchStatus(str, Enum):
    VALID = 'valid'
    SUSPICIOUS = 'suspicious'
    INVALID = 'invalid'


class FinalStatus(str, Enum):
    VALID = 'valid'
    VALID_NO_BLOCKCHAIN = 'valid_no_blockchain'
    SUSPICIOUS = 'suspicious'
    INVALID = 'invalid'


class PipelineStage(str, Enum):
    """States a single verification request moves through."""

    RECEIVED = 'received'
    EXTRACTING = 'extracting'
    EXTRACTION_FAILED = 'extraction_failed'
    NO_CERT_ID = 'no_cert_id'
    EXTRACTED = 'extracted'
    MATCHING = 'matching'
    MATCHED = 'matched'
    CHAIN_CHECKING = 'chain_checking'
    CHAIN_CHECKED = 'chain_checked'
    COMPOSING = 'composing'
    DONE = 'done'


# Fields compared between a document and its reference record
COMPARABLE_FIELDS = ('name', 'roll_no', 'year')


@dataclass(frozen=True)
class CandidateFields:
    """Fields recognized on an uploaded document. Any of them may be missing."""

    cert_id: Optional[str] = None
    name: Optional[str] = None
    roll_no: Optional[str] = None
    year: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            'cert_id': self.cert_id,
            'name': self.name,
            'roll_no': self.roll_no,
            'year': self.year,
        }


@dataclass(frozen=True)
class ReferenceRecord:
    """One legitimately issued certificate from the reference dataset."""

    cert_id: str
    name: str = ''
    roll_no: str = ''
    year: str = ''
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> 'ReferenceRecord':
        """Build a record from a raw dataset row; unknown keys land in ``extra``."""
        known = {'cert_id', 'name', 'roll_no', 'year'}
        return cls(
            cert_id=str(row['cert_id']),
            name=str(row.get('name') or ''),
            roll_no=str(row.get('roll_no') or ''),
            year=str(row.get('year') or ''),
            extra={k: v for k, v in row.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            'cert_id': self.cert_id,
            'name': self.name,
            'roll_no': self.roll_no,
            'year': self.year,
        })
        return data


@dataclass(frozen=True)
class FieldComparison:
    """How one document field compared with the reference record."""

    field: str
    extracted: Optional[str]
    expected: Optional[str]
    compared: bool
    matched: bool
    similarity: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'field': self.field,
            'extracted': self.extracted,
            'expected': self.expected,
            'compared': self.compared,
            'matched': self.matched,
            'similarity': self.similarity,
        }


@dataclass(frozen=True)
class MatchResult:
    status: MatchStatus
    confidence: float
    reason: str
    record: Optional[ReferenceRecord] = None
    fields: List[FieldComparison] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'confidence': self.confidence,
            'reason': self.reason,
            'record': self.record.to_dict() if self.record else None,
            'fields': [f.to_dict() for f in self.fields],
        }


@dataclass(frozen=True)
class ChainResult:
    verified: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'verified': self.verified, 'error': self.error}


@dataclass(frozen=True)
class Verdict:
    final_status: FinalStatus
    color: str
    label: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.final_status.value,
            'color': self.color,
            'label': self.label,
        }


@dataclass
class VerificationResult:
    """
    Everything the pipeline produced for one request.

    ``stage`` is the terminal state reached: ``done``, ``no_cert_id`` or
    ``extraction_failed``. Intermediate values are ``None`` when the pipeline
    stopped before producing them.
    """

    success: bool
    stage: PipelineStage
    message: str
    content_hash: Optional[str] = None
    candidate: Optional[CandidateFields] = None
    match: Optional[MatchResult] = None
    chain: Optional[ChainResult] = None
    verdict: Optional[Verdict] = None

    @property
    def status(self) -> Optional[str]:
        return self.verdict.final_status.value if self.verdict else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'stage': self.stage.value,
            'message': self.message,
            'status': self.status,
            'file_hash': self.content_hash,
            'extracted_data': self.candidate.to_dict() if self.candidate else None,
            'db_result': self.match.to_dict() if self.match else None,
            'blockchain_result': self.chain.to_dict() if self.chain else None,
            'verdict': self.verdict.to_dict() if self.verdict else None,
        }
