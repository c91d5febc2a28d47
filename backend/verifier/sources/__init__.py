from verifier.sources.base import EventSourceClient
from verifier.sources.eventbrite import EventbriteSource
from verifier.sources.google import GooglePlacesSource
from verifier.sources.meetup import MeetupSource
from verifier.sources.registry import SourceAggregator, build_sources
from verifier.sources.ticketmaster import TicketmasterSource

__all__ = [
    "EventSourceClient",
    "EventbriteSource",
    "GooglePlacesSource",
    "MeetupSource",
    "SourceAggregator",
    "TicketmasterSource",
    "build_sources",
]
