"""
Event Verification Engine.
Fetches real events once per batch, scores every candidate against them,
classifies each candidate and retries low scorers with a targeted search.
"""
from __future__ import annotations

import asyncio
import uuid
from datetime import datetime
from typing import Optional, Sequence

from shared.models.domain import (
    CandidateEvent,
    EventQuery,
    MatchedSource,
    RealEvent,
    VerificationResult,
    VerificationStats,
    VerifiedEvent,
)
from shared.models.enums import VerificationStatus
from shared.utils.logging import get_logger, log_context
from shared.utils.metrics import BATCH_LATENCY, VERIFICATION_CONFIDENCE, VERIFICATIONS, atrack_latency

from verifier import confidence as conf
from verifier.config import VerifierSettings, get_verifier_settings
from verifier.matching import PARTIAL_THRESHOLD, find_discrepancies, match, score
from verifier.sources.registry import SourceAggregator

logger = get_logger(__name__)


class EventVerificationService:
    """Runs verification: aggregate real events -> match -> classify -> fallback search."""

    def __init__(
        self,
        aggregator: Optional[SourceAggregator] = None,
        settings: Optional[VerifierSettings] = None,
    ) -> None:
        self._settings = settings or get_verifier_settings()
        self._sources = aggregator or SourceAggregator(verifier_settings=self._settings)

    @property
    def sources(self) -> SourceAggregator:
        return self._sources

    async def start(self) -> None:
        await self._sources.start()

    async def close(self) -> None:
        await self._sources.close()

    async def __aenter__(self) -> "EventVerificationService":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def verify_events(
        self,
        candidates: Sequence[CandidateEvent],
        location: str,
        genre: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> VerificationResult:
        """
        Verify a batch of generated events against real event sources.

        Real events are fetched once and shared by every candidate; candidates
        are then verified concurrently. Output order matches input order.
        """
        query = EventQuery(
            location=location,
            genre=genre,
            start=start,
            end=end,
            radius_km=self._settings.default_radius_km,
            latitude=latitude,
            longitude=longitude,
        )
        with log_context(batch_id=uuid.uuid4().hex[:12]):
            async with atrack_latency(BATCH_LATENCY):
                real_events = await self._sources.get_all_events(query)
                logger.info(
                    "verification_started",
                    location=location,
                    candidates=len(candidates),
                    real_events=len(real_events),
                )

                verified = await asyncio.gather(
                    *(self.verify_one(c, real_events, query) for c in candidates)
                )
                stats = calculate_stats(verified)

            logger.info(
                "verification_finished",
                location=location,
                total=stats.total_events,
                verified=stats.verified_count,
                partial=stats.partial_count,
                unverified=stats.unverified_count,
                average_confidence=stats.average_confidence,
            )
        return VerificationResult(verified_events=list(verified), stats=stats)

    async def verify_one(
        self,
        candidate: CandidateEvent,
        real_events: Sequence[RealEvent],
        query: EventQuery,
    ) -> VerifiedEvent:
        """Verify a single candidate: best match, classify, optional fallback search."""
        result = match(candidate, real_events)
        matched = result.event
        best_score = result.score
        discrepancies = result.discrepancies
        status = conf.classify(best_score)

        if status == VerificationStatus.UNVERIFIED and self._settings.fallback_search_enabled:
            direct = await self._sources.find_event(
                candidate.summary,
                query.location,
                candidate.start,
                latitude=query.latitude,
                longitude=query.longitude,
            )
            if direct is not None:
                matched = direct
                best_score = score(candidate, direct)
                if best_score >= PARTIAL_THRESHOLD:
                    status = VerificationStatus.PARTIAL
                    discrepancies = find_discrepancies(candidate, direct)
                logger.debug(
                    "verification_fallback_match",
                    uid=candidate.uid,
                    source=direct.source.value,
                    score=round(best_score, 4),
                )

        verified = build_verified_event(candidate, best_score, status, matched, discrepancies)
        VERIFICATIONS.labels(status=status.value).inc()
        VERIFICATION_CONFIDENCE.observe(verified.confidence)
        logger.debug(
            "candidate_verified",
            uid=candidate.uid,
            status=status.value,
            confidence=verified.confidence,
            matched_id=matched.id if matched else None,
        )
        return verified

    # Static helpers for the web layer
    confidence_description = staticmethod(conf.confidence_description)
    should_trust = staticmethod(conf.should_trust)


def build_verified_event(
    candidate: CandidateEvent,
    best_score: float,
    status: VerificationStatus,
    matched: Optional[RealEvent],
    discrepancies: list[str],
) -> VerifiedEvent:
    fields = candidate.model_dump()
    matched_source = None
    if matched is not None:
        matched_source = MatchedSource(name=matched.name, source=matched.source, url=matched.url)
        if not fields.get("url") and matched.url:
            fields["url"] = matched.url
    return VerifiedEvent(
        **fields,
        confidence=conf.to_confidence(best_score),
        verification_status=status,
        matched_source=matched_source,
        discrepancies=discrepancies if status == VerificationStatus.PARTIAL and discrepancies else None,
    )


def calculate_stats(events: Sequence[VerifiedEvent]) -> VerificationStats:
    total = len(events)
    counts = {status: 0 for status in VerificationStatus}
    for event in events:
        counts[event.verification_status] += 1
    average = sum(e.confidence for e in events) / total if total else 0.0
    return VerificationStats(
        total_events=total,
        verified_count=counts[VerificationStatus.VERIFIED],
        partial_count=counts[VerificationStatus.PARTIAL],
        unverified_count=counts[VerificationStatus.UNVERIFIED],
        average_confidence=conf.round_half_up(average),
    )
