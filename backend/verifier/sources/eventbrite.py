"""
Eventbrite event source.
Searches public events around an address; bearer-token authenticated.
"""
from __future__ import annotations

from typing import Any, Optional

from shared.models.domain import EventQuery, RealEvent
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


class EventbriteSource(EventSourceClient):
    """Eventbrite event search connector."""

    EVENTBRITE_BASE_URL = "https://www.eventbriteapi.com/v3"

    def __init__(
        self,
        token: str,
        timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
        http_client: Optional[ProviderHTTPClient] = None,
    ) -> None:
        http_client = http_client or ProviderHTTPClient(
            provider_name=EventSource.EVENTBRITE.value,
            base_url=self.EVENTBRITE_BASE_URL,
            headers={"Authorization": f"Bearer {token}"},
        )
        super().__init__(
            source=EventSource.EVENTBRITE,
            http_client=http_client,
            credential=token,
            timeout_s=timeout_s,
        )

    def build_params(self, query: EventQuery) -> dict[str, Any]:
        params: dict[str, Any] = {
            "location.address": query.location,
            "location.within": f"{query.radius_km}km",
            "expand": "venue,organizer,category",
        }
        if query.start:
            params["start_date.range_start"] = format_instant(query.start)
        if query.end:
            params["start_date.range_end"] = format_instant(query.end)
        if query.genre:
            params["q"] = query.genre
        return params

    async def _fetch(self, query: EventQuery) -> list[RealEvent]:
        resp = await self._http.get("/events/search/", params=self.build_params(query))
        data = resp.json()
        return [
            event
            for event in (self._parse_event(raw) for raw in data["events"])
            if event is not None
        ]

    def _parse_event(self, raw: dict[str, Any]) -> Optional[RealEvent]:
        event_id = text_or_none(raw.get("id"))
        name = text_or_none(dig(raw, "name", "text"))
        if not event_id or not name:
            logger.debug("eventbrite_event_skipped", event_id=event_id)
            return None

        address = text_or_none(dig(raw, "venue", "address", "localized_address_display"))
        category = text_or_none(dig(raw, "category", "name"))
        return RealEvent(
            id=f"{self._source.value}-{event_id}",
            source=self._source,
            name=name,
            description=text_or_none(dig(raw, "description", "text")),
            start=parse_instant(dig(raw, "start", "utc")),
            end=parse_instant(dig(raw, "end", "utc")),
            location=address,
            venue=text_or_none(dig(raw, "venue", "name")),
            address=address,
            url=text_or_none(raw.get("url")),
            # Search results carry no ticket amounts, only the free flag
            price="Free" if raw.get("is_free") else "Paid",
            image_url=text_or_none(dig(raw, "logo", "url")),
            categories=[category] if category else [],
            organizer=text_or_none(dig(raw, "organizer", "name")),
        )
