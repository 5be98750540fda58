"""
Order-preserving deduplication of alert records.
"""

from typing import Iterable, List

from .records import AlertRecord


def dedupe(records: Iterable[AlertRecord]) -> List[AlertRecord]:
    """Keep the first record for each dedup key, in input order."""
    seen = set()
    result = []
    for record in records:
        key = record.dedup_key
        if key in seen:
            continue
        seen.add(key)
        result.append(record)
    return result
