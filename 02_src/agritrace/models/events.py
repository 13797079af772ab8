"""Traceability event data model."""

from dataclasses import dataclass
from datetime import datetime

from .actors import ActorRef
from .event_types import EventScope, EventType
from .payloads import EventPayload
from .units import GeoPoint


@dataclass(frozen=True)
class TraceabilityEvent:
    """An immutable ledger entry."""

    id: str
    event_type: EventType
    actor_ref: ActorRef
    timestamp: datetime
    payload: EventPayload
    vti_id: str | None = None
    field_context_id: str | None = None  # secondary when vti_id is set
    geo_location: GeoPoint | None = None
    is_public_traceable: bool = False

    @property
    def scope(self) -> EventScope:
        return EventScope.UNIT if self.vti_id else EventScope.FIELD

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "vtiId": self.vti_id,
            "fieldContextId": self.field_context_id,
            "timestamp": self.timestamp.isoformat(),
            "eventType": self.event_type.value,
            "actorRef": self.actor_ref.to_dict(),
            "geoLocation": self.geo_location.to_dict() if self.geo_location else None,
            "payload": self.payload.to_dict(),
            "isPublicTraceable": self.is_public_traceable,
        }
