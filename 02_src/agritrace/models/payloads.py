"""Event payload shapes, keyed by event type.

Known fields are mapped to attributes; anything else a producer sends is
kept in ``extensions`` and written back unchanged, so newer producers can add
keys without breaking older readers.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from ..errors import ValidationError
from .event_types import EventType


@dataclass
class _Payload:
    # attribute name -> persisted key
    KEYS: ClassVar[dict[str, str]] = {}

    extensions: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "_Payload":
        known = {}
        extra = dict(data)
        for attr, key in cls.KEYS.items():
            if key in extra:
                known[attr] = extra.pop(key)
        return cls(extensions=extra, **known)

    def to_dict(self) -> dict:
        data = dict(self.extensions)
        for attr, key in self.KEYS.items():
            data[key] = getattr(self, attr)
        return data


@dataclass
class HarvestPayload(_Payload):
    KEYS: ClassVar[dict[str, str]] = {
        "yield_kg": "yieldKg",
        "quality_grade": "qualityGrade",
    }

    yield_kg: float | None = None
    quality_grade: str | None = None


@dataclass
class InputApplicationPayload(_Payload):
    KEYS: ClassVar[dict[str, str]] = {
        "input_id": "inputId",
        "quantity": "quantity",
        "unit": "unit",
        "application_date": "applicationDate",
        "method": "method",
    }

    input_id: str | None = None
    quantity: float | None = None
    unit: str | None = None
    application_date: str | None = None  # ISO-8601
    method: str | None = None


@dataclass
class ObservationPayload(_Payload):
    KEYS: ClassVar[dict[str, str]] = {
        "observation_type": "observationType",
        "observation_date": "observationDate",
        "details": "details",
        "media_urls": "mediaUrls",
        "field_context_id": "fieldContextId",
        "ai_analysis": "aiAnalysis",
    }

    observation_type: str | None = None
    observation_date: str | None = None  # ISO-8601
    details: str | None = None
    media_urls: list[str] = field(default_factory=list)
    field_context_id: str | None = None
    ai_analysis: str | None = None


@dataclass
class GenericPayload(_Payload):
    """Unstructured payload for event types without a known shape."""


EventPayload = Union[HarvestPayload, InputApplicationPayload, ObservationPayload, GenericPayload]

PAYLOAD_TYPES: dict[EventType, type] = {
    EventType.HARVESTED: HarvestPayload,
    EventType.INPUT_APPLIED: InputApplicationPayload,
    EventType.OBSERVED: ObservationPayload,
}


def payload_type_for(event_type: EventType) -> type:
    """Payload class used for an event type."""
    return PAYLOAD_TYPES.get(event_type, GenericPayload)


def parse_payload(event_type: EventType, data: Any) -> EventPayload:
    """Coerce a raw mapping (or an already typed payload) for event_type."""
    cls = payload_type_for(event_type)

    if data is None:
        return cls()
    if isinstance(data, GenericPayload):
        return data if cls is GenericPayload else cls.from_dict(data.extensions)
    if isinstance(data, _Payload):
        if not isinstance(data, cls):
            raise ValidationError(
                f"{type(data).__name__} cannot be used for {event_type.value} events"
            )
        return data
    if not isinstance(data, dict):
        raise ValidationError("payload must be an object")
    return cls.from_dict(data)
