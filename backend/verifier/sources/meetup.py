"""
Meetup event source.
Uses the GraphQL keywordSearch endpoint, which searches around coordinates;
queries without latitude/longitude are skipped.
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

KM_PER_MILE = 1.609344
PAGE_SIZE = 50

KEYWORD_SEARCH_QUERY = """
query ($filter: SearchConnectionFilter!, $input: ConnectionInput) {
  keywordSearch(filter: $filter, input: $input) {
    edges {
      node {
        result {
          ... on Event {
            id
            title
            description
            dateTime
            endTime
            eventUrl
            imageUrl
            venue { name address city }
            feeSettings { amount currency }
            group { name }
          }
        }
      }
    }
  }
}
"""


def _format_fee(fee: Any) -> str:
    amount = dig(fee, "amount")
    if not amount:
        return "Free"
    currency = text_or_none(dig(fee, "currency")) or "USD"
    return f"${amount}" if currency == "USD" else f"{amount} {currency}"


class MeetupSource(EventSourceClient):
    """Meetup GraphQL connector."""

    MEETUP_BASE_URL = "https://api.meetup.com"

    def __init__(
        self,
        api_key: str,
        timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
        http_client: Optional[ProviderHTTPClient] = None,
    ) -> None:
        http_client = http_client or ProviderHTTPClient(
            provider_name=EventSource.MEETUP.value,
            base_url=self.MEETUP_BASE_URL,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        super().__init__(
            source=EventSource.MEETUP,
            http_client=http_client,
            credential=api_key,
            timeout_s=timeout_s,
        )

    def build_payload(self, query: EventQuery) -> dict[str, Any]:
        search_filter: dict[str, Any] = {
            "query": query.genre or "events",
            "lat": query.latitude,
            "lon": query.longitude,
            "radius": round(query.radius_km / KM_PER_MILE, 1),
            "source": "EVENTS",
        }
        if query.start:
            search_filter["startDateRange"] = format_instant(query.start)
        if query.end:
            search_filter["endDateRange"] = format_instant(query.end)
        return {
            "query": KEYWORD_SEARCH_QUERY,
            "variables": {"filter": search_filter, "input": {"first": PAGE_SIZE}},
        }

    async def _fetch(self, query: EventQuery) -> list[RealEvent]:
        if not query.has_coordinates:
            logger.info("meetup_coordinates_missing", location=query.location)
            return []

        resp = await self._http.post("/gql", json=self.build_payload(query))
        data = resp.json()
        if data.get("errors"):
            raise ValueError(f"Meetup GraphQL errors: {data['errors']}")

        edges = dig(data, "data", "keywordSearch", "edges") or []
        return [
            event
            for event in (self._parse_event(dig(edge, "node", "result")) for edge in edges)
            if event is not None
        ]

    def _parse_event(self, raw: Any) -> Optional[RealEvent]:
        if not isinstance(raw, dict):
            return None
        event_id = text_or_none(raw.get("id"))
        title = text_or_none(raw.get("title"))
        if not event_id or not title:
            return None

        venue = raw.get("venue") or {}
        return RealEvent(
            id=f"{self._source.value}-{event_id}",
            source=self._source,
            name=title,
            description=text_or_none(raw.get("description")),
            start=parse_instant(raw.get("dateTime")),
            end=parse_instant(raw.get("endTime")),
            location=text_or_none(venue.get("city")),
            venue=text_or_none(venue.get("name")),
            address=text_or_none(venue.get("address")),
            url=text_or_none(raw.get("eventUrl")),
            price=_format_fee(raw.get("feeSettings")),
            image_url=text_or_none(raw.get("imageUrl")),
            organizer=text_or_none(dig(raw, "group", "name")),
        )
