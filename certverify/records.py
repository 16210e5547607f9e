"""
Reference record store.

Loaded once at process start and exposed as a read-only mapping keyed by
certificate ID. Reloading requires a restart.
"""

import json
import logging
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from certverify.models import ReferenceRecord

logger = logging.getLogger(__name__)

RecordStore = Mapping[str, ReferenceRecord]


def build_store(rows: Iterable[Mapping[str, Any]]) -> RecordStore:
    """Index dataset rows by ``cert_id``. Rows without an ID are skipped."""
    records = {}
    for row in rows:
        if not row.get('cert_id'):
            logger.warning('Skipping reference row without cert_id: %s', row)
            continue
        record = ReferenceRecord.from_dict(row)
        if record.cert_id in records:
            logger.warning('Duplicate cert_id %s in reference data; keeping first', record.cert_id)
            continue
        records[record.cert_id] = record
    return MappingProxyType(records)


def load_store(path: str) -> RecordStore:
    """Load the reference dataset (a JSON list of objects) from disk."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            rows = json.load(f)
    except FileNotFoundError:
        logger.warning('Sample data not found at %s, using empty store', path)
        rows = []
    store = build_store(rows)
    logger.info('Sample data loaded: %d records', len(store))
    return store
