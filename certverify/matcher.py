"""
Reference record matching with confidence scoring.

An ID hit alone is not evidence: confidence comes only from the comparable
fields present on both the document and the record.
"""

from typing import Optional, Tuple

from rapidfuzz import fuzz

from certverify import config
from certverify.models import (
    COMPARABLE_FIELDS,
    CandidateFields,
    FieldComparison,
    MatchResult,
    MatchStatus,
)
from certverify.records import RecordStore

REASONS = {
    MatchStatus.VALID: 'All fields match',
    MatchStatus.SUSPICIOUS: 'Some fields do not match',
    MatchStatus.INVALID: 'Field mismatch',
}
NOT_FOUND_REASON = 'Certificate ID not found in database'


def _substring_match(a: str, b: str) -> bool:
    """True if one contains the other, ignoring case."""
    a, b = a.lower(), b.lower()
    return a in b or b in a


def compare_field(name: str, extracted: Optional[str], expected: Optional[str]) -> FieldComparison:
    extracted = (extracted or '').strip()
    expected = (expected or '').strip()
    compared = bool(extracted and expected)
    matched = compared and _substring_match(extracted, expected)
    # Reported for inspection only; never affects the status
    similarity = round(fuzz.ratio(extracted.lower(), expected.lower()), 1) if compared else 0.0
    return FieldComparison(
        field=name,
        extracted=extracted or None,
        expected=expected or None,
        compared=compared,
        matched=matched,
        similarity=similarity,
    )


def classify(confidence: float,
             valid_threshold: float = config.VALID_CONFIDENCE,
             suspicious_threshold: float = config.SUSPICIOUS_CONFIDENCE) -> MatchStatus:
    """Map a confidence percentage to its status tier (lower bounds inclusive)."""
    if confidence >= valid_threshold:
        return MatchStatus.VALID
    if confidence >= suspicious_threshold:
        return MatchStatus.SUSPICIOUS
    return MatchStatus.INVALID


def score(comparisons) -> Tuple[int, int, float]:
    """Return (matches, total, confidence) over the compared fields."""
    total = sum(1 for c in comparisons if c.compared)
    matches = sum(1 for c in comparisons if c.matched)
    confidence = matches * 100 / total if total > 0 else 0.0
    return matches, total, confidence


def match(candidate: CandidateFields, store: RecordStore,
          valid_threshold: float = config.VALID_CONFIDENCE,
          suspicious_threshold: float = config.SUSPICIOUS_CONFIDENCE) -> MatchResult:
    """Look the candidate up by certificate ID and score the remaining fields."""
    record = store.get(candidate.cert_id) if candidate.cert_id else None
    if record is None:
        return MatchResult(status=MatchStatus.INVALID, confidence=0.0, reason=NOT_FOUND_REASON)

    comparisons = [
        compare_field(name, getattr(candidate, name), getattr(record, name))
        for name in COMPARABLE_FIELDS
    ]
    _, _, confidence = score(comparisons)
    status = classify(confidence, valid_threshold, suspicious_threshold)
    return MatchResult(
        status=status,
        confidence=confidence,
        reason=REASONS[status],
        record=record,
        fields=comparisons,
    )
