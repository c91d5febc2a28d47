"""
Source aggregator: fans a query out to every configured event source
concurrently and merges the normalized results.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from shared.config import Settings, get_settings
from shared.models.domain import EventQuery, RealEvent
from shared.utils.logging import get_logger

from verifier.config import VerifierSettings, get_verifier_settings
from verifier.sources.base import EventSourceClient
from verifier.sources.eventbrite import EventbriteSource
from verifier.sources.google import GooglePlacesSource
from verifier.sources.meetup import MeetupSource
from verifier.sources.ticketmaster import TicketmasterSource

logger = get_logger(__name__)


def build_sources(
    settings: Settings | None = None,
    verifier_settings: VerifierSettings | None = None,
) -> list[EventSourceClient]:
    """Instantiate every known source in registration order, configured or not."""
    settings = settings or get_settings()
    verifier_settings = verifier_settings or get_verifier_settings()
    timeout_s = verifier_settings.source_timeout_s
    return [
        EventbriteSource(settings.eventbrite_token, timeout_s=timeout_s),
        TicketmasterSource(settings.ticketmaster_api_key, timeout_s=timeout_s),
        MeetupSource(settings.meetup_api_key, timeout_s=timeout_s),
        GooglePlacesSource(settings.google_places_api_key, timeout_s=timeout_s),
    ]


class SourceAggregator:
    """
    Holds the registered event sources and queries the active ones together.

    Only sources with a credential are active. A source that fails
    contributes an empty list (see EventSourceClient.fetch), so one
    provider can never fail the whole aggregation.
    """

    def __init__(
        self,
        sources: list[EventSourceClient] | None = None,
        verifier_settings: VerifierSettings | None = None,
    ) -> None:
        self._verifier_settings = verifier_settings or get_verifier_settings()
        self._sources = sources if sources is not None else build_sources(
            verifier_settings=self._verifier_settings
        )

    @property
    def sources(self) -> list[EventSourceClient]:
        return list(self._sources)

    @property
    def active_sources(self) -> list[EventSourceClient]:
        return [s for s in self._sources if s.is_configured]

    async def start(self) -> None:
        for source in self.active_sources:
            await source.start()

    async def close(self) -> None:
        for source in self.active_sources:
            await source.close()

    async def __aenter__(self) -> "SourceAggregator":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def get_all_events(self, query: EventQuery) -> list[RealEvent]:
        """
        Fetch events from every active source concurrently.

        Results are concatenated in registration order. With no active
        sources this returns an empty list and every candidate will end up
        unverified.
        """
        active = self.active_sources
        logger.info(
            "event_sources_configured",
            count=len(active),
            sources=[s.source.value for s in active],
        )
        if not active:
            logger.warning("no_event_sources_configured", location=query.location)
            return []

        results = await asyncio.gather(*(source.fetch(query) for source in active))
        events = [event for batch in results for event in batch]
        logger.info(
            "event_sources_fetched",
            location=query.location,
            genre=query.genre,
            total=len(events),
            per_source={s.source.value: len(batch) for s, batch in zip(active, results)},
        )
        return events

    async def find_event(
        self,
        name: str,
        location: str,
        date: Optional[datetime] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Optional[RealEvent]:
        """
        Second-chance lookup for one specific event.

        Searches with ``name`` as the keyword, within +/- the fallback window
        around ``date`` when given, and returns the first event whose name
        contains the search name or is contained in it (case-insensitive).
        """
        needle = name.lower().strip()
        if not needle:
            return None

        start = end = None
        if date is not None:
            window = timedelta(hours=self._verifier_settings.fallback_window_hours)
            start, end = date - window, date + window
        query = EventQuery(
            location=location,
            genre=name,
            start=start,
            end=end,
            radius_km=self._verifier_settings.default_radius_km,
            latitude=latitude,
            longitude=longitude,
        )

        events = await self.get_all_events(query)
        for event in events:
            haystack = event.name.lower()
            if haystack and (needle in haystack or haystack in needle):
                return event
        return None
