"""
Base event source interface.
All event sources normalize provider payloads to RealEvent for comparison.
"""
from __future__ import annotations

import abc
import asyncio
import time
from datetime import datetime
from typing import Any, Optional

from shared.models.domain import EventQuery, RealEvent, ensure_utc
from shared.models.enums import EventSource
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import SOURCE_EVENTS, SOURCE_FAILURES, SOURCE_LATENCY

logger = get_logger(__name__)

DEFAULT_FETCH_TIMEOUT_S = 10.0


class EventSourceClient(abc.ABC):
    """
    Base for Eventbrite, Ticketmaster, Meetup and Google Places clients.

    Subclasses implement ``_fetch``; the public ``fetch`` wraps it with a
    per-call timeout, latency metrics and error recovery so that a failing
    provider contributes an empty list instead of raising.
    """

    def __init__(
        self,
        source: EventSource,
        http_client: ProviderHTTPClient,
        credential: str = "",
        timeout_s: float = DEFAULT_FETCH_TIMEOUT_S,
    ) -> None:
        self._source = source
        self._http = http_client
        self._credential = (credential or "").strip()
        self._timeout_s = timeout_s

    @property
    def source(self) -> EventSource:
        return self._source

    @property
    def is_configured(self) -> bool:
        """A source with an absent or empty credential is never activated."""
        return bool(self._credential)

    async def start(self) -> None:
        """Initialize the source HTTP client."""
        await self._http.start()

    async def close(self) -> None:
        """Shutdown the source HTTP client."""
        await self._http.close()

    async def fetch(self, query: EventQuery) -> list[RealEvent]:
        """
        Fetch and normalize events for a query. Never raises.

        Timeouts, transport errors, HTTP error statuses and malformed payloads
        are logged and yield an empty list.
        """
        start = time.perf_counter()
        source = self._source.value
        try:
            events = await asyncio.wait_for(self._fetch(query), timeout=self._timeout_s)
        except asyncio.TimeoutError:
            SOURCE_FAILURES.labels(source=source, reason="timeout").inc()
            logger.warning(
                "source_fetch_timeout",
                source=source,
                location=query.location,
                timeout_s=self._timeout_s,
            )
            return []
        except Exception as exc:
            SOURCE_FAILURES.labels(source=source, reason=type(exc).__name__).inc()
            logger.error(
                "source_fetch_error",
                source=source,
                location=query.location,
                error=str(exc),
            )
            return []
        finally:
            SOURCE_LATENCY.labels(source=source).observe(time.perf_counter() - start)

        SOURCE_EVENTS.labels(source=source).inc(len(events))
        logger.debug("source_fetch_success", source=source, count=len(events))
        return events

    # ── Abstract methods (each source implements these) ─────────────────
    @abc.abstractmethod
    async def _fetch(self, query: EventQuery) -> list[RealEvent]:
        """Provider-specific request and normalization logic. May raise."""
        ...


# ── Payload helpers ──────────────────────────────────────────────────────
def dig(data: Any, *path: Any) -> Any:
    """Walk nested dicts/lists, returning None on any missing step."""
    current = data
    for key in path:
        if isinstance(current, dict):
            current = current.get(key)
        elif isinstance(current, list) and isinstance(key, int):
            current = current[key] if -len(current) <= key < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_instant(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 instant (``Z`` suffix allowed); None if unparseable."""
    raw = text_or_none(value)
    if not raw:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
    except ValueError:
        return None


def format_instant(value: datetime) -> str:
    """Render an instant as ``YYYY-MM-DDTHH:MM:SSZ`` in UTC."""
    return ensure_utc(value).strftime("%Y-%m-%dT%H:%M:%SZ")
