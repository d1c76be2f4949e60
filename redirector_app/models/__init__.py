"""
Database models for URL shortener.

Two tables: urls (one row per short link, soft-deleted in place) and
visits (append-only access log referencing urls.id).
"""

from .url import URL
from .visit import Visit

__all__ = ["URL", "Visit"]
