"""
Audit trail infrastructure.

Append-only logging of role and access changes.
"""

from grc_backend.kernel.events.event_store import EventStore

__all__ = [
    "EventStore",
]
