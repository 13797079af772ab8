"""Data models for the traceability core."""

from .actors import ActorKind, ActorProfile, ActorRef, Role, UserProfile
from .bus import BusMessage, Topic
from .event_types import EventScope, EventType, parse_event_type
from .events import TraceabilityEvent
from .lineage import RecentBatch, ResolvedEvent, UnitHistory
from .payloads import (
    EventPayload,
    GenericPayload,
    HarvestPayload,
    InputApplicationPayload,
    ObservationPayload,
    parse_payload,
)
from .units import FIELD_CONTEXT_KEY, GeoPoint, TraceableUnit, VtiStatus

__all__ = [
    # Units
    "TraceableUnit",
    "VtiStatus",
    "GeoPoint",
    "FIELD_CONTEXT_KEY",
    # Events
    "TraceabilityEvent",
    "EventType",
    "EventScope",
    "parse_event_type",
    # Payloads
    "EventPayload",
    "HarvestPayload",
    "InputApplicationPayload",
    "ObservationPayload",
    "GenericPayload",
    "parse_payload",
    # Actors
    "ActorRef",
    "ActorKind",
    "ActorProfile",
    "Role",
    "UserProfile",
    # Lineage
    "ResolvedEvent",
    "UnitHistory",
    "RecentBatch",
    # Bus
    "BusMessage",
    "Topic",
]
