"""Booking-Modul: Slot-Kandidaten, Konfliktprüfung, Slot-Speicher."""

from .materializer import materialize, materialize_all, pair_key_for
from .conflicts import CommitReport, ConflictChecker, SlotRejection, commit_candidates
from .store import InMemorySlotStore, JsonSlotStore, SlotConflictError, SlotStore

__all__ = [
    "materialize",
    "materialize_all",
    "pair_key_for",
    "CommitReport",
    "ConflictChecker",
    "SlotRejection",
    "commit_candidates",
    "InMemorySlotStore",
    "JsonSlotStore",
    "SlotConflictError",
    "SlotStore",
]
