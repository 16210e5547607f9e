"""
Field extraction from recognized certificate text.

Extraction is an ordered list of ``ExtractionRule(field, pattern)`` pairs. A
field may have several rules (most specific first); rules run in list order
and the first rule that matches a field wins. Patterns are matched
case-insensitively and the first capture group is trimmed.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from certverify.errors import ExtractionFailed
from certverify.models import CandidateFields
from certverify.ocr import TextExtractor

logger = logging.getLogger(__name__)

_ID_VALUE = r'([A-Z0-9][A-Z0-9\-/]*)'
_NAME_VALUE = r"([A-Z][A-Z .'\-]*?)[ \t]*(?=\n|$|\broll\b)"
# Label/value gap; OCR of table layouts often puts the value on the next line
_GAP = r'[ \t]*\n?[ \t]*'


@dataclass(frozen=True)
class ExtractionRule:
    field: str
    pattern: str

    def compile(self):
        return re.compile(self.pattern, re.IGNORECASE | re.MULTILINE)


DEFAULT_RULES = (
    # Certificate ID / Certificate No. / Certificate Number
    ExtractionRule('cert_id', r'\bcertificate[ \t]*(?:id|number|no)\b\.?[ \t]*[:#\-]*' + _GAP + _ID_VALUE),
    # Cert: / Cert #
    ExtractionRule('cert_id', r'\bcert(?:ificate)?\b\.?[ \t]*[:#]+' + _GAP + _ID_VALUE),
    # Bare "ID:" / "Number:", except roll and student numbers
    ExtractionRule('cert_id', r'(?<!roll )(?<!student )\b(?:id|number)\b[ \t]*[:#]+' + _GAP + _ID_VALUE),

    ExtractionRule('name', r'\b(?:student[ \t]+)?name\b[ \t]*[:\-]?' + _GAP + _NAME_VALUE),
    ExtractionRule('name', r'\bstudent\b[ \t]*[:\-]?' + _GAP + _NAME_VALUE),

    ExtractionRule('roll_no', r'\broll[ \t]*(?:(?:number|no)\b|#)\.?[ \t]*[:\-#]*' + _GAP + _ID_VALUE),
    ExtractionRule('roll_no', r'\bstudent[ \t]*(?:id|no)\b\.?[ \t]*[:\-#]*' + _GAP + _ID_VALUE),
    # Bare "Roll:"; never take the "No"/"Number" of an empty label as the value
    ExtractionRule('roll_no', r'\broll\b[ \t]*[:\-#]*' + _GAP + r'(?!(?:no|number)\b)' + _ID_VALUE),

    ExtractionRule('year', r'\b(?:year|issued|session|batch|passing)\b[^\n\d]*\n?[ \t]*((?:19|20)\d{2})\b'),
    ExtractionRule('year', r'\b((?:19|20)\d{2})\b'),
)


def parse_fields(text: str, rules: Sequence[ExtractionRule] = DEFAULT_RULES) -> CandidateFields:
    """Apply extraction rules to OCR text. Missing fields are left as None."""
    found: Dict[str, str] = {}
    for rule in rules:
        if rule.field in found:
            continue
        match = rule.compile().search(text or '')
        if match:
            value = match.group(1).strip()
            if value:
                found[rule.field] = value
    return CandidateFields(**found)


class Extractor:
    """Runs OCR off the event loop, then applies the extraction rules."""

    def __init__(self, text_extractor: TextExtractor, rules: Sequence[ExtractionRule] = DEFAULT_RULES,
                 lang: str = 'eng', timeout: Optional[float] = None):
        self.text_extractor = text_extractor
        self.rules = tuple(rules)
        self.lang = lang
        self.timeout = timeout

    async def recognize(self, data: bytes, mime_type: str) -> str:
        try:
            # wait_for only stops waiting; the worker thread is bounded by the
            # engine's own timeout (TesseractTextExtractor passes it to pytesseract)
            return await asyncio.wait_for(
                asyncio.to_thread(self.text_extractor.extract_text, data, mime_type, self.lang),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ExtractionFailed(f'OCR timed out after {self.timeout}s') from e
        except ExtractionFailed:
            raise
        except Exception as e:
            raise ExtractionFailed(f'OCR extraction failed: {e}') from e

    async def extract(self, data: bytes, mime_type: str) -> CandidateFields:
        text = await self.recognize(data, mime_type)
        logger.debug('OCR result: %r', text)
        fields = parse_fields(text, self.rules)
        logger.info('Extracted data: %s', fields.to_dict())
        return fields
