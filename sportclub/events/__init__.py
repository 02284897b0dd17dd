"""
Events Module - Eventi

- eventi singoli e ricorrenti (espansi in occorrenze)
- squadre collegate, risposte degli atleti e riepilogo presenze
"""

from .router import router as events_router, get_event_service
from .service import EventService
from .recurrence import RecurrenceRule, Frequency, expand_occurrences

__all__ = [
    "events_router",
    "get_event_service",
    "EventService",
    "RecurrenceRule",
    "Frequency",
    "expand_occurrences",
]
