"""
Output of normalized alerts: JSON files for the presentation layer and a
SQLite archive of past runs.
"""

from .database import AlertArchive, ArchivedRun
from .export import write_outputs, load_records, load_audit, RECORDS_FILE, AUDIT_FILE
from .sink import AlertSink

__all__ = [
    'AlertArchive', 'ArchivedRun',
    'write_outputs', 'load_records', 'load_audit', 'RECORDS_FILE', 'AUDIT_FILE',
    'AlertSink'
]
