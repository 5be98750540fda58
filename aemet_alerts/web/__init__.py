"""
JSON API over the normalized alerts.
"""

from .app import create_app

__all__ = ['create_app']
