"""
Match scoring between a generated candidate event and real provider events.

Score formula:
    score = W_NAME * name_similarity
          + W_TIME * (1 - hours_apart / 48)          (0 beyond 48 hours)
          + W_LOCATION * venue_similarity            (0.5 when either side missing)
          + W_PRICE * (1 - |price_delta| / 100)       (0 beyond 10; 0.5 when unparseable)

Score range: [0.0, 1.0]. All functions here are pure.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from thefuzz import fuzz

from shared.models.domain import CandidateEvent, RealEvent, ensure_utc

# Weights for each attribute (must sum to 1.0)
NAME_WEIGHT = 0.40
TIME_WEIGHT = 0.30
LOCATION_WEIGHT = 0.20
PRICE_WEIGHT = 0.10

# Classification thresholds
VERIFIED_THRESHOLD = 0.8
PARTIAL_THRESHOLD = 0.5

TIME_WINDOW_HOURS = 48
PRICE_TOLERANCE = 10.0
PRICE_SCALE = 100.0
MISSING_FIELD_CREDIT = 0.5

# Discrepancy reporting
NAME_DISCREPANCY_THRESHOLD = 0.9
TIME_DISCREPANCY_HOURS = 2
VENUE_DISCREPANCY_THRESHOLD = 0.8

_PRICE_RE = re.compile(r"[$€£¥]?\s*(\d+(?:\.\d{1,2})?)")


@dataclass(frozen=True)
class MatchResult:
    event: Optional[RealEvent]
    score: float
    discrepancies: list[str] = field(default_factory=list)


def similarity(a: str, b: str) -> float:
    """Case-insensitive string similarity in [0, 1]; identical strings give 1.0."""
    left, right = (a or "").lower(), (b or "").lower()
    if left == right:
        return 1.0
    return fuzz.ratio(left, right) / 100.0


def hours_apart(a: datetime, b: datetime) -> int:
    """Whole hours between two instants, truncated toward zero."""
    delta = ensure_utc(a) - ensure_utc(b)
    return int(abs(delta.total_seconds()) // 3600)


def extract_price(text: Optional[str]) -> Optional[float]:
    """First numeric amount in a free-form price ("$20", "20-35 USD"), or None."""
    if not text:
        return None
    match = _PRICE_RE.search(text)
    return float(match.group(1)) if match else None


def _name_score(candidate: CandidateEvent, real: RealEvent) -> float:
    return similarity(candidate.summary, real.name)


def _time_score(candidate: CandidateEvent, real: RealEvent) -> float:
    if real.start is None:
        return 0.0
    gap = hours_apart(candidate.start, real.start)
    if gap > TIME_WINDOW_HOURS:
        return 0.0
    return 1.0 - gap / TIME_WINDOW_HOURS


def _location_score(candidate: CandidateEvent, real: RealEvent) -> float:
    if not candidate.location or not real.venue:
        return MISSING_FIELD_CREDIT
    return similarity(candidate.location, real.venue)


def _price_score(candidate: CandidateEvent, real: RealEvent) -> float:
    ours, theirs = extract_price(candidate.price), extract_price(real.price)
    if ours is None or theirs is None:
        return MISSING_FIELD_CREDIT
    diff = abs(ours - theirs)
    if diff > PRICE_TOLERANCE:
        return 0.0
    return 1.0 - diff / PRICE_SCALE


def score(candidate: CandidateEvent, real: RealEvent) -> float:
    """Weighted similarity of a candidate to one real event."""
    # fsum keeps a perfect match at exactly 1.0
    total = math.fsum((
        NAME_WEIGHT * _name_score(candidate, real),
        TIME_WEIGHT * _time_score(candidate, real),
        LOCATION_WEIGHT * _location_score(candidate, real),
        PRICE_WEIGHT * _price_score(candidate, real),
    ))
    return max(0.0, min(1.0, total))


def best_match(
    candidate: CandidateEvent,
    events: Sequence[RealEvent],
) -> tuple[Optional[RealEvent], float]:
    """
    Best-scoring real event for a candidate.

    Only a strictly higher score replaces the current best, so ties keep the
    earliest event. An empty list gives ``(None, 0.0)``.
    """
    best: Optional[RealEvent] = None
    best_score = 0.0
    for event in events:
        current = score(candidate, event)
        if current > best_score:
            best, best_score = event, current
    return best, best_score


def find_discrepancies(candidate: CandidateEvent, real: RealEvent) -> list[str]:
    """Human-readable notes for each attribute that disagrees with the match."""
    notes: list[str] = []

    if similarity(candidate.summary, real.name) < NAME_DISCREPANCY_THRESHOLD:
        notes.append(f'Event name differs: "{candidate.summary}" vs "{real.name}"')

    if real.start is not None:
        gap = hours_apart(candidate.start, real.start)
        if gap > TIME_DISCREPANCY_HOURS:
            notes.append(
                f"Time differs by {gap} hours: "
                f"{candidate.start.isoformat()} vs {ensure_utc(real.start).isoformat()}"
            )

    if candidate.location and real.venue:
        if similarity(candidate.location, real.venue) < VENUE_DISCREPANCY_THRESHOLD:
            notes.append(f'Venue differs: "{candidate.location}" vs "{real.venue}"')

    ours, theirs = extract_price(candidate.price), extract_price(real.price)
    if ours is not None and theirs is not None and abs(ours - theirs) > PRICE_TOLERANCE:
        notes.append(f"Price differs: {candidate.price} vs {real.price}")

    return notes


def match(candidate: CandidateEvent, events: Sequence[RealEvent]) -> MatchResult:
    """Best match plus discrepancies when the score lands in the partial band."""
    event, best_score = best_match(candidate, events)
    notes: list[str] = []
    if event is not None and PARTIAL_THRESHOLD <= best_score < VERIFIED_THRESHOLD:
        notes = find_discrepancies(candidate, event)
    return MatchResult(event=event, score=best_score, discrepancies=notes)
