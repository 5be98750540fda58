"""
CAP normalization

Maps AEMET CAP documents (Atom feed or per-alert form) to flat
AlertRecord lists with a three-level severity scale.
"""

from .records import AlertRecord, AlertLevel, CAPParameter, records_to_dicts
from .severity import map_severity
from .dedupe import dedupe
from .parser import normalize, parse_structured
from .salvage import salvage

__all__ = [
    'AlertRecord', 'AlertLevel', 'CAPParameter', 'records_to_dicts',
    'map_severity', 'dedupe',
    'normalize', 'parse_structured', 'salvage'
]
