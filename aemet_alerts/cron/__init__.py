"""
Scheduled fetching of AEMET CAP warnings.
"""

from .runner import run_once, process_area, RunReport, AreaAudit
from .scheduler import AlertScheduler

__all__ = ['run_once', 'process_area', 'RunReport', 'AreaAudit', 'AlertScheduler']
