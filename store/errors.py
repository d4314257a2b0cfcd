"""
Event-store exceptions.
"""

from __future__ import annotations


class EventStoreError(Exception):
    """Base exception for event-store adapter failures."""


class EventStoreQueryError(EventStoreError):
    """Raised when a read query fails inside the backend."""
