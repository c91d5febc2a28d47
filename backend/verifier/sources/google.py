"""
Google Places verification source (secondary reference).
Places lists venues, not scheduled events: results carry venue and address
only, with no start time, and mostly contribute location evidence.
"""
from __future__ import annotations

from typing import Any, Optional

from shared.models.domain import EventQuery, RealEvent
from shared.models.enums import EventSource
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

from verifier.sources.base import DEFAULT_FETCH_TIMEOUT_S, EventSourceClient, dig, text_or_none

logger = get_logger(__name__)

VENUE_TYPES = "event_venue|night_club|stadium|theater|concert_hall"
OK_STATUSES = ("OK", "ZERO_RESULTS")


def _checked(data: dict[str, Any], endpoint: str) -> dict[str, Any]:
    """Google reports quota and key errors in a 200 body."""
    status = data.get("status", "OK")
    if status not in OK_STATUSES:
        raise ValueError(f"Google {endpoint} status {status}: {data.get('error_message', '')}")
    return data


class GooglePlacesSource(EventSourceClient):
    """Geocodes the query location, then searches nearby event venues."""

    GOOGLE_MAPS_BASE_URL = "https://maps.googleapis.com/maps/api"

    def __init__(
        self,
        api_key: str,
        timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
        http_client: Optional[ProviderHTTPClient] = None,
    ) -> None:
        http_client = http_client or ProviderHTTPClient(
            provider_name=EventSource.GOOGLE.value,
            base_url=self.GOOGLE_MAPS_BASE_URL,
        )
        super().__init__(
            source=EventSource.GOOGLE,
            http_client=http_client,
            credential=api_key,
            timeout_s=timeout_s,
        )

    async def _coordinates(self, query: EventQuery) -> Optional[tuple[float, float]]:
        if query.has_coordinates:
            return query.latitude, query.longitude
        resp = await self._http.get(
            "/geocode/json",
            params={"address": query.location, "key": self._credential},
        )
        data = _checked(resp.json(), "geocode")
        location = dig(data, "results", 0, "geometry", "location")
        if not location:
            logger.info("google_geocode_no_result", location=query.location)
            return None
        return float(location["lat"]), float(location["lng"])

    async def _fetch(self, query: EventQuery) -> list[RealEvent]:
        coords = await self._coordinates(query)
        if coords is None:
            return []

        lat, lng = coords
        resp = await self._http.get(
            "/place/nearbysearch/json",
            params={
                "location": f"{lat},{lng}",
                "radius": query.radius_km * 1000,
                "type": VENUE_TYPES,
                "keyword": query.genre or "events",
                "key": self._credential,
            },
        )
        data = _checked(resp.json(), "nearbysearch")
        return [
            place
            for place in (self._parse_place(raw, query) for raw in data.get("results", []))
            if place is not None
        ]

    def _parse_place(self, raw: dict[str, Any], query: EventQuery) -> Optional[RealEvent]:
        place_id = text_or_none(raw.get("place_id"))
        name = text_or_none(raw.get("name"))
        if not place_id or not name:
            return None
        vicinity = text_or_none(raw.get("vicinity"))
        return RealEvent(
            id=f"{self._source.value}-{place_id}",
            source=self._source,
            name=name,
            description=f"Event venue in {query.location}",
            location=vicinity,
            venue=name,
            address=vicinity,
            categories=[str(t) for t in raw.get("types") or []],
        )
