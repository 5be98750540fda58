"""
Exception types shared across the package.
"""

from typing import Optional


class AemetAlertsError(Exception):
    """Base class for errors raised by this package."""


class ExtractionError(AemetAlertsError):
    """Container content could not be unpacked (corrupt zip, truncated gzip, bad tar)."""

    def __init__(self, message: str, kind: Optional[object] = None):
        super().__init__(message)
        self.kind = kind


class FetchError(AemetAlertsError, ConnectionError):
    """HTTP or network failure while talking to AEMET OpenData."""


class ConfigError(AemetAlertsError, ValueError):
    """Missing or unusable configuration."""
