"""
AEMET OpenData client

Resolves and downloads CAP warning resources per area.
"""

from .feed import AEMETFeedClient, with_retry

__all__ = ['AEMETFeedClient', 'with_retry']
