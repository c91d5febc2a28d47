"""
Confidence helpers for verification results.
Score >= 0.8 -> VERIFIED; >= 0.5 -> PARTIAL; otherwise UNVERIFIED.
"""
from __future__ import annotations

import math

from shared.models.domain import VerifiedEvent
from shared.models.enums import VerificationStatus

from verifier.matching import PARTIAL_THRESHOLD, VERIFIED_THRESHOLD

DEFAULT_MIN_TRUST_CONFIDENCE = 60

# (lower bound, label), checked top-down
CONFIDENCE_LABELS: tuple[tuple[int, str], ...] = (
    (90, "Very High"),
    (75, "High"),
    (60, "Moderate"),
    (40, "Low"),
)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (built-in round() is banker's)."""
    return int(math.floor(value + 0.5))


def to_confidence(score: float) -> int:
    """Integer percentage for a score in [0, 1]."""
    return max(0, min(100, round_half_up(score * 100)))


def classify(score: float) -> VerificationStatus:
    if score >= VERIFIED_THRESHOLD:
        return VerificationStatus.VERIFIED
    if score >= PARTIAL_THRESHOLD:
        return VerificationStatus.PARTIAL
    return VerificationStatus.UNVERIFIED


def confidence_description(confidence: int) -> str:
    """Human label for a confidence percentage."""
    for lower, label in CONFIDENCE_LABELS:
        if confidence >= lower:
            return label
    return "Very Low"


def should_trust(event: VerifiedEvent, min_confidence: int = DEFAULT_MIN_TRUST_CONFIDENCE) -> bool:
    """True if the event is confident enough and matched at least partially."""
    return event.confidence >= min_confidence and event.verification_status.is_trusted_tier
