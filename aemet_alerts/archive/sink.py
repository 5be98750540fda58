"""
Destination for the records and audit trail of a run.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..cap import AlertRecord
from .database import AlertArchive
from .export import write_outputs

logger = logging.getLogger(__name__)


class AlertSink:
    """Writes the JSON output files and, when configured, archives the run."""

    def __init__(self, data_dir: str, archive: Optional[AlertArchive] = None):
        self.data_dir = data_dir
        self.archive = archive

    def publish(
        self,
        records: List[AlertRecord],
        audit: List[Dict[str, Any]],
        started_at: Optional[datetime] = None
    ) -> Dict[str, Any]:
        paths = write_outputs(self.data_dir, records, audit)
        logger.info("Wrote %d alerts to %s", len(records), paths['records'])
        logger.info("Source audit in %s", paths['audit'])

        result: Dict[str, Any] = dict(paths)
        if self.archive is not None:
            result['run_id'] = self.archive.add_run(records, audit, started_at=started_at)
        return result
