"""
Unit tests for the verification service: batch flow, classification,
fallback search, URL backfill and stats.

Run: pytest backend/tests/test_engine.py -v
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.models.domain import CandidateEvent, EventQuery, RealEvent, VerifiedEvent
from shared.models.enums import EventSource, VerificationStatus
from verifier.config import VerifierSettings
from verifier.confidence import round_half_up
from verifier.engine import EventVerificationService, calculate_stats
from verifier.sources.registry import SourceAggregator

START = datetime(2025, 6, 15, 20, 0, tzinfo=timezone.utc)


def make_candidate(**overrides) -> CandidateEvent:
    fields = dict(
        uid="cand-1",
        summary="Jazz Night at Blue Note",
        start=START,
        end=START + timedelta(hours=3),
        location="Blue Note, NYC",
        price="$20",
    )
    fields.update(overrides)
    return CandidateEvent(**fields)


def make_real(**overrides) -> RealEvent:
    fields = dict(
        id="ticketmaster-1",
        source=EventSource.TICKETMASTER,
        name="Jazz Night - Blue Note SF",
        start=START,
        venue="Blue Note",
        price="$25",
        url="https://www.ticketmaster.com/event/1",
    )
    fields.update(overrides)
    return RealEvent(**fields)


@pytest.fixture
def aggregator() -> MagicMock:
    agg = MagicMock(spec=SourceAggregator)
    agg.get_all_events = AsyncMock(return_value=[])
    agg.find_event = AsyncMock(return_value=None)
    agg.start = AsyncMock()
    agg.close = AsyncMock()
    return agg


@pytest.fixture
def service(aggregator: MagicMock) -> EventVerificationService:
    return EventVerificationService(aggregator=aggregator, settings=VerifierSettings(_env_file=None))


# ── Batch flow ──────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_fetches_real_events_once_per_batch(
    service: EventVerificationService, aggregator: MagicMock
) -> None:
    aggregator.get_all_events.return_value = [make_real()]
    candidates = [make_candidate(uid=f"c{i}") for i in range(3)]

    await service.verify_events(candidates, "New York", genre="jazz", start=START)

    aggregator.get_all_events.assert_awaited_once()
    query: EventQuery = aggregator.get_all_events.await_args.args[0]
    assert query.location == "New York"
    assert query.genre == "jazz"
    assert query.start == START
    assert query.radius_km == 50


@pytest.mark.asyncio
async def test_no_sources_leaves_everything_unverified(
    service: EventVerificationService, aggregator: MagicMock
) -> None:
    result = await service.verify_events([make_candidate(uid="a"), make_candidate(uid="b")], "New York")

    for event in result.verified_events:
        assert event.verification_status == VerificationStatus.UNVERIFIED
        assert event.confidence == 0
        assert event.matched_source is None
        assert event.discrepancies is None
    assert result.stats.unverified_count == 2
    assert result.stats.average_confidence == 0
    assert aggregator.find_event.await_count == 2


@pytest.mark.asyncio
async def test_empty_batch(service: EventVerificationService, aggregator: MagicMock) -> None:
    result = await service.verify_events([], "New York")
    assert result.verified_events == []
    assert result.stats.total_events == 0
    assert result.stats.average_confidence == 0


@pytest.mark.asyncio
async def test_output_order_matches_input(
    service: EventVerificationService, aggregator: MagicMock
) -> None:
    aggregator.get_all_events.return_value = [make_real()]
    candidates = [
        make_candidate(uid="first"),
        make_candidate(uid="second", summary="Poetry Slam", location="Nuyorican Cafe"),
        make_candidate(uid="third"),
    ]
    result = await service.verify_events(candidates, "New York")
    assert [e.uid for e in result.verified_events] == ["first", "second", "third"]


# ── Classification ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_close_match_is_verified(service: EventVerificationService, aggregator: MagicMock) -> None:
    aggregator.get_all_events.return_value = [make_real()]
    result = await service.verify_events([make_candidate()], "New York")

    event = result.verified_events[0]
    assert event.verification_status == VerificationStatus.VERIFIED
    assert event.confidence >= 80
    assert event.matched_source is not None
    assert event.matched_source.source == EventSource.TICKETMASTER
    assert event.matched_source.name == "Jazz Night - Blue Note SF"
    assert event.discrepancies is None
    aggregator.find_event.assert_not_awaited()


@pytest.mark.asyncio
async def test_partial_match_lists_discrepancies(
    service: EventVerificationService, aggregator: MagicMock
) -> None:
    aggregator.get_all_events.return_value = [
        make_real(name="Rock Concert", venue="Blue Note", price="$20")
    ]
    candidate = make_candidate(summary="Jazz Brunch", location="Blue Note", price="$20")
    result = await service.verify_events([candidate], "New York")

    event = result.verified_events[0]
    assert event.verification_status == VerificationStatus.PARTIAL
    assert 50 <= event.confidence < 80
    assert event.discrepancies == ['Event name differs: "Jazz Brunch" vs "Rock Concert"']
    aggregator.find_event.assert_not_awaited()


# ── Fallback search ─────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_fallback_upgrades_to_partial(
    service: EventVerificationService, aggregator: MagicMock
) -> None:
    direct = make_real(id="meetup-9", source=EventSource.MEETUP, name="Jazz Night", price="$20")
    aggregator.find_event.return_value = direct
    candidate = make_candidate(summary="Jazz Night", location="Blue Note", price="$20")

    result = await service.verify_events([candidate], "New York", latitude=40.7, longitude=-74.0)

    aggregator.find_event.assert_awaited_once_with(
        "Jazz Night", "New York", START, latitude=40.7, longitude=-74.0
    )
    event = result.verified_events[0]
    # A fallback hit is never promoted beyond partial
    assert event.verification_status == VerificationStatus.PARTIAL
    assert event.confidence == 100
    assert event.matched_source is not None
    assert event.matched_source.source == EventSource.MEETUP
    assert event.discrepancies is None


@pytest.mark.asyncio
async def test_fallback_partial_carries_discrepancies(
    service: EventVerificationService, aggregator: MagicMock
) -> None:
    aggregator.get_all_events.return_value = []
    aggregator.find_event.return_value = make_real(
        name="Jazz Night", start=START + timedelta(hours=3), price="$20"
    )
    candidate = make_candidate(summary="Jazz Night", location="Blue Note", price="$20")

    result = await service.verify_events([candidate], "New York")

    event = result.verified_events[0]
    assert event.verification_status == VerificationStatus.PARTIAL
    assert event.discrepancies == [
        "Time differs by 3 hours: 2025-06-15T20:00:00+00:00 vs 2025-06-15T23:00:00+00:00"
    ]


@pytest.mark.asyncio
async def test_fallback_low_score_stays_unverified(
    service: EventVerificationService, aggregator: MagicMock
) -> None:
    aggregator.find_event.return_value = make_real(
        name="Jazz Night Extravaganza",
        start=START + timedelta(days=5),
        venue="Madison Square Garden",
        price="$90",
    )
    candidate = make_candidate(summary="Jazz Night", location="Blue Note", price="$20")

    result = await service.verify_events([candidate], "New York")

    event = result.verified_events[0]
    assert event.verification_status == VerificationStatus.UNVERIFIED
    assert 0 < event.confidence < 50
    assert event.matched_source is not None
    assert event.matched_source.name == "Jazz Night Extravaganza"
    assert event.discrepancies is None


@pytest.mark.asyncio
async def test_fallback_can_be_disabled(aggregator: MagicMock) -> None:
    service = EventVerificationService(
        aggregator=aggregator,
        settings=VerifierSettings(_env_file=None, fallback_search_enabled=False),
    )
    result = await service.verify_events([make_candidate()], "New York")
    aggregator.find_event.assert_not_awaited()
    assert result.verified_events[0].verification_status == VerificationStatus.UNVERIFIED


# ── Output shaping ──────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_matched_url_backfills_missing_candidate_url(
    service: EventVerificationService, aggregator: MagicMock
) -> None:
    aggregator.get_all_events.return_value = [make_real()]
    result = await service.verify_events(
        [make_candidate(uid="no-url"), make_candidate(uid="own-url", url="https://example.com/own")],
        "New York",
    )
    no_url, own_url = result.verified_events
    assert no_url.url == "https://www.ticketmaster.com/event/1"
    assert own_url.url == "https://example.com/own"


@pytest.mark.asyncio
async def test_candidate_fields_are_preserved(
    service: EventVerificationService, aggregator: MagicMock
) -> None:
    aggregator.get_all_events.return_value = [make_real()]
    candidate = make_candidate(description="Late set")
    event = (await service.verify_events([candidate], "New York")).verified_events[0]
    assert event.uid == candidate.uid
    assert event.summary == candidate.summary
    assert event.description == "Late set"
    assert event.start == candidate.start
    assert event.end == candidate.end
    assert event.location == candidate.location
    assert event.price == candidate.price


@pytest.mark.asyncio
async def test_stats_are_consistent(service: EventVerificationService, aggregator: MagicMock) -> None:
    aggregator.get_all_events.return_value = [
        make_real(),
        make_real(id="ticketmaster-2", name="Rock Concert", venue="Blue Note", price="$20"),
    ]
    candidates = [
        make_candidate(uid="verified"),
        make_candidate(uid="partial", summary="Jazz Brunch", location="Blue Note", price="$20",
                       start=START + timedelta(days=30), end=START + timedelta(days=30, hours=2)),
        make_candidate(uid="unverified", summary="Poetry Slam", location="Nuyorican Cafe",
                       start=START + timedelta(days=60), end=START + timedelta(days=60, hours=2)),
    ]
    result = await service.verify_events(candidates, "New York")
    stats = result.stats

    assert stats.total_events == 3
    assert stats.verified_count + stats.partial_count + stats.unverified_count == 3
    assert stats.verified_count >= 1
    confidences = [e.confidence for e in result.verified_events]
    assert stats.average_confidence == round_half_up(sum(confidences) / 3)


def test_calculate_stats_rounds_half_up() -> None:
    base = dict(uid="x", summary="s", start=START, end=START)
    events = [
        VerifiedEvent(**base, confidence=80, verification_status=VerificationStatus.VERIFIED),
        VerifiedEvent(**base, confidence=55, verification_status=VerificationStatus.PARTIAL),
    ]
    stats = calculate_stats(events)
    assert stats.verified_count == 1
    assert stats.partial_count == 1
    assert stats.unverified_count == 0
    assert stats.average_confidence == 68


@pytest.mark.asyncio
async def test_lifecycle_delegates_to_aggregator(aggregator: MagicMock) -> None:
    async with EventVerificationService(aggregator=aggregator, settings=VerifierSettings(_env_file=None)):
        pass
    aggregator.start.assert_awaited_once()
    aggregator.close.assert_awaited_once()
