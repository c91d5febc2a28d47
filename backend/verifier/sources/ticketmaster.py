"""
Ticketmaster Discovery API event source.
Searches ticketed events by city with an API-key query parameter.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from shared.models.domain import EventQuery, RealEvent, ensure_utc
from shared.models.enums import EventSource
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

from verifier.sources.base import (
    DEFAULT_FETCH_TIMEOUT_S,
    EventSourceClient,
    dig,
    format_instant,
    parse_instant,
    text_or_none,
)

logger = get_logger(__name__)

PAGE_SIZE = 50


def _local_start(dates: Any) -> Optional[datetime]:
    """Start from ``localDate``/``localTime`` in the venue timezone (UTC if unknown)."""
    local_date = text_or_none(dig(dates, "start", "localDate"))
    if not local_date:
        return None
    local_time = text_or_none(dig(dates, "start", "localTime")) or "00:00:00"
    try:
        naive = datetime.fromisoformat(f"{local_date}T{local_time}")
    except ValueError:
        return None
    tz_name = text_or_none(dig(dates, "timezone"))
    if tz_name:
        try:
            return ensure_utc(naive.replace(tzinfo=ZoneInfo(tz_name)))
        except (ZoneInfoNotFoundError, ValueError):
            logger.debug("ticketmaster_unknown_timezone", timezone=tz_name)
    return ensure_utc(naive)


def _format_price(price_range: Any) -> Optional[str]:
    if not isinstance(price_range, dict):
        return None
    low, high = price_range.get("min"), price_range.get("max")
    if low is None and high is None:
        return None
    if low is None or high is None or low == high:
        return f"${low if low is not None else high}"
    return f"${low}-${high}"


class TicketmasterSource(EventSourceClient):
    """Ticketmaster Discovery v2 connector."""

    TICKETMASTER_BASE_URL = "https://app.ticketmaster.com/discovery/v2"

    def __init__(
        self,
        api_key: str,
        timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
        http_client: Optional[ProviderHTTPClient] = None,
    ) -> None:
        http_client = http_client or ProviderHTTPClient(
            provider_name=EventSource.TICKETMASTER.value,
            base_url=self.TICKETMASTER_BASE_URL,
        )
        super().__init__(
            source=EventSource.TICKETMASTER,
            http_client=http_client,
            credential=api_key,
            timeout_s=timeout_s,
        )

    def build_params(self, query: EventQuery) -> dict[str, Any]:
        params: dict[str, Any] = {
            "apikey": self._credential,
            "city": query.location,
            "radius": query.radius_km,
            "unit": "km",
            "size": PAGE_SIZE,
        }
        if query.start:
            params["startDateTime"] = format_instant(query.start)
        if query.end:
            params["endDateTime"] = format_instant(query.end)
        if query.genre:
            params["keyword"] = query.genre
        return params

    async def _fetch(self, query: EventQuery) -> list[RealEvent]:
        resp = await self._http.get("/events.json", params=self.build_params(query))
        data = resp.json()
        raw_events = dig(data, "_embedded", "events")
        if not raw_events:
            return []
        return [
            event
            for event in (self._parse_event(raw) for raw in raw_events)
            if event is not None
        ]

    def _parse_event(self, raw: dict[str, Any]) -> Optional[RealEvent]:
        event_id = text_or_none(raw.get("id"))
        name = text_or_none(raw.get("name"))
        if not event_id or not name:
            logger.debug("ticketmaster_event_skipped", event_id=event_id)
            return None

        start = parse_instant(dig(raw, "dates", "start", "dateTime"))
        if start is None:
            # Date-only listings ("TBA" times) still carry a local date
            start = _local_start(raw.get("dates"))

        venue = dig(raw, "_embedded", "venues", 0) or {}
        classification = dig(raw, "classifications", 0) or {}
        categories = [
            label
            for label in (
                text_or_none(dig(classification, "genre", "name")),
                text_or_none(dig(classification, "segment", "name")),
            )
            if label
        ]
        return RealEvent(
            id=f"{self._source.value}-{event_id}",
            source=self._source,
            name=name,
            description=text_or_none(raw.get("info")) or text_or_none(raw.get("pleaseNote")),
            start=start,
            end=parse_instant(dig(raw, "dates", "end", "dateTime")),
            location=text_or_none(dig(venue, "city", "name")),
            venue=text_or_none(venue.get("name")),
            address=text_or_none(dig(venue, "address", "line1")),
            url=text_or_none(raw.get("url")),
            price=_format_price(dig(raw, "priceRanges", 0)),
            image_url=text_or_none(dig(raw, "images", 0, "url")),
            categories=categories,
            organizer=text_or_none(dig(raw, "promoter", "name")),
        )
