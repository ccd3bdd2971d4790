"""
Event recording for domain services.

Components that change state collect domain events here; the
application layer drains them after each operation and persists them
inside the same transaction.
"""

from __future__ import annotations
from typing import List

from .events import DomainEvent


class EventRecorder:
    """Mixin keeping a list of pending domain events."""

    def __init__(self):
        self._domain_events: List[DomainEvent] = []

    def add_domain_event(self, event: DomainEvent) -> None:
        """Add a domain event to be dispatched after persistence."""
        self._domain_events.append(event)

    def clear_domain_events(self) -> List[DomainEvent]:
        """Clear and return all pending domain events."""
        events = self._domain_events.copy()
        self._domain_events.clear()
        return events

    @property
    def domain_events(self) -> List[DomainEvent]:
        """Get all pending domain events."""
        return self._domain_events.copy()
