"""
AEMET CAP alert reader

Turns official AEMET CAP bulletins (raw XML or zip/gzip/tar containers)
into a flat, deduplicated list of alert records with a three-level
severity scale.
"""

from .pipeline import process_resource, ResourceResult
from .cap import AlertRecord, AlertLevel, normalize, map_severity, dedupe
from .errors import AemetAlertsError, ExtractionError, FetchError, ConfigError

__all__ = [
    'process_resource', 'ResourceResult',
    'AlertRecord', 'AlertLevel', 'normalize', 'map_severity', 'dedupe',
    'AemetAlertsError', 'ExtractionError', 'FetchError', 'ConfigError'
]
