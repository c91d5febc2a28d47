"""
Pydantic v2 domain models for the event verifier.
These are the canonical in-process representations passed between the
event sources, the match scorer and the verification service.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared.models.enums import EventSource, VerificationStatus


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# ── Candidate (generated) events ────────────────────────────────────────
class CandidateEvent(DomainModel):
    """An event proposed by the upstream generator; immutable input."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, frozen=True)

    uid: str
    summary: str
    description: Optional[str] = None
    start: datetime
    end: datetime
    location: Optional[str] = None
    price: Optional[str] = None
    url: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


# ── Real (provider) events ──────────────────────────────────────────────
class RealEvent(DomainModel):
    """An event record normalized from one event-listing provider."""
    id: str
    source: EventSource
    name: str
    description: Optional[str] = None
    # None for directory-style sources that list venues, not scheduled events
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    location: Optional[str] = None
    venue: Optional[str] = None
    address: Optional[str] = None
    url: Optional[str] = None
    price: Optional[str] = None
    image_url: Optional[str] = None
    categories: list[str] = Field(default_factory=list)
    organizer: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class EventQuery(DomainModel):
    """Generic search query translated by each source into its own request shape."""
    location: str
    genre: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    radius_km: int = 50
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @field_validator("start", "end")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


# ── Verification output ─────────────────────────────────────────────────
class MatchedSource(DomainModel):
    name: str
    source: EventSource
    url: Optional[str] = None


class VerifiedEvent(CandidateEvent):
    """A candidate event annotated with its verification outcome."""
    confidence: int = Field(ge=0, le=100)
    verification_status: VerificationStatus
    matched_source: Optional[MatchedSource] = None
    discrepancies: Optional[list[str]] = None


class VerificationStats(DomainModel):
    total_events: int = 0
    verified_count: int = 0
    partial_count: int = 0
    unverified_count: int = 0
    average_confidence: int = 0


class VerificationResult(DomainModel):
    verified_events: list[VerifiedEvent] = Field(default_factory=list)
    stats: VerificationStats = Field(default_factory=VerificationStats)


class VerificationRequest(DomainModel):
    """One batch of candidates plus the search context they were generated for."""
    location: str
    genre: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    candidates: list[CandidateEvent] = Field(default_factory=list)
