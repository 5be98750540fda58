"""
One fetch-and-normalize run over all configured AEMET areas.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from ..aemet import AEMETFeedClient
from ..archive import AlertArchive, AlertSink
from ..cap import AlertRecord, dedupe
from ..config import Settings
from ..pipeline import process_resource

logger = logging.getLogger(__name__)


def _utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


@dataclass
class AreaAudit:
    """Provenance of one area's data within a run."""
    area: str
    meta_endpoint: str
    datos_url: str = ''
    fetched_at: str = field(default_factory=_utc_timestamp)
    xmls_encontrados: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'area': self.area,
            'meta_endpoint': self.meta_endpoint,
            'datos_url': self.datos_url,
            'fetched_at': self.fetched_at,
            'xmls_encontrados': self.xmls_encontrados,
        }
        if self.error:
            result['error'] = self.error
        return result


@dataclass
class RunReport:
    """Summary of a completed run."""
    started_at: datetime
    finished_at: datetime
    records: List[AlertRecord] = field(default_factory=list)
    audit: List[AreaAudit] = field(default_factory=list)
    outputs: Dict[str, Any] = field(default_factory=dict)

    @property
    def failed_areas(self) -> List[str]:
        return [a.area for a in self.audit if a.error]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'started_at': self.started_at.isoformat(),
            'finished_at': self.finished_at.isoformat(),
            'record_count': len(self.records),
            'failed_areas': self.failed_areas,
            'audit': [a.to_dict() for a in self.audit],
            'outputs': self.outputs
        }


def build_client(settings: Settings) -> AEMETFeedClient:
    return AEMETFeedClient(
        api_key=settings.api_key,
        timeout=settings.meta_timeout,
        data_timeout=settings.data_timeout,
        attempts=settings.retry_attempts,
        retry_delay=settings.retry_delay
    )


def build_sink(settings: Settings) -> AlertSink:
    archive = AlertArchive(settings.archive_db) if settings.archive_db else None
    return AlertSink(settings.data_dir, archive=archive)


def process_area(
    area: str,
    settings: Settings,
    client: AEMETFeedClient
) -> Tuple[List[AlertRecord], AreaAudit]:
    """
    Fetch and normalize one area.

    Raises:
        FetchError: If the endpoint or the data URL cannot be fetched
        ExtractionError: If the downloaded container is corrupt
    """
    endpoint = settings.endpoint_for(area)
    data_url = client.get_data_url(endpoint)
    logger.info("Area %s data source: %s", area, data_url)

    data = client.fetch_resource(data_url)
    result = process_resource(data_url, data)

    audit = AreaAudit(
        area=area,
        meta_endpoint=endpoint,
        datos_url=data_url,
        xmls_encontrados=result.payload_count
    )
    return result.records, audit


def run_once(
    settings: Settings,
    client: Optional[AEMETFeedClient] = None,
    sink: Optional[AlertSink] = None
) -> RunReport:
    """
    Run the whole job once.

    A failing area is logged and audited with zero documents; the other
    areas still run and the output is still written.

    Raises:
        ConfigError: If settings are incomplete; nothing is fetched
    """
    settings.validate()
    client = client or build_client(settings)
    sink = sink or build_sink(settings)

    started_at = datetime.now(timezone.utc)
    logger.info("Starting AEMET run for areas %s", ', '.join(settings.areas))

    aggregated: List[AlertRecord] = []
    audit: List[AreaAudit] = []

    for area in settings.areas:
        start = time.monotonic()
        try:
            records, entry = process_area(area, settings, client)
            aggregated.extend(records)
            audit.append(entry)
            logger.info("Area %s: %d documents, %d alerts", area, entry.xmls_encontrados, len(records))
        except Exception as e:
            logger.exception("Error processing area %s", area)
            audit.append(AreaAudit(
                area=area,
                meta_endpoint=settings.endpoint_for(area),
                error=str(e)
            ))
        finally:
            logger.info("Area %s done in %.2fs", area, time.monotonic() - start)

    records = dedupe(aggregated)
    outputs = sink.publish(records, [a.to_dict() for a in audit], started_at=started_at)

    return RunReport(
        started_at=started_at,
        finished_at=datetime.now(timezone.utc),
        records=records,
        audit=audit,
        outputs=outputs
    )
