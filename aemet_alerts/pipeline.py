"""
Resource -> alert records.

Pure transform, no network access. Safe to call concurrently: each call owns
its temporary storage.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .cap import AlertRecord, normalize, dedupe
from .resource import ContainerKind, classify, extract, decode_payload

logger = logging.getLogger(__name__)


@dataclass
class ResourceResult:
    """Outcome of processing one downloaded resource."""
    kind: ContainerKind
    payload_count: int
    records: List[AlertRecord] = field(default_factory=list)


def process_resource(
    source_hint: str,
    data: bytes,
    work_dir: Optional[str] = None
) -> ResourceResult:
    """
    Classify, extract, decode and normalize a downloaded resource.

    Records from all payloads are deduplicated once after aggregation.

    Raises:
        ExtractionError: If the container content is corrupt
    """
    kind = classify(source_hint, data)
    payloads = extract(kind, data, work_dir=work_dir, name=source_hint)
    logger.info("%s: %s container, %d XML documents", source_hint, kind.value, len(payloads))

    records = []
    for payload in payloads:
        found = normalize(decode_payload(payload))
        logger.debug("%s: %d records", payload.name, len(found))
        records.extend(found)

    return ResourceResult(kind=kind, payload_count=len(payloads), records=dedupe(records))
