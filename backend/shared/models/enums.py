"""Domain enumerations for the event verifier."""
from __future__ import annotations

from enum import Enum


class EventSource(str, Enum):
    """Origin tag of a real event; one per integrated provider."""
    EVENTBRITE = "eventbrite"
    TICKETMASTER = "ticketmaster"
    MEETUP = "meetup"
    GOOGLE = "google"


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    PARTIAL = "partial"
    UNVERIFIED = "unverified"

    @property
    def is_trusted_tier(self) -> bool:
        return self != VerificationStatus.UNVERIFIED
