"""Traceability event types and scopes."""

from enum import Enum

from ..errors import ValidationError


class EventType(str, Enum):
    """Lifecycle event types.

    The usual order is HARVESTED -> PROCESSED -> PACKAGED -> SHIPPED ->
    RECEIVED -> SOLD -> CONSUMED, with INPUT_APPLIED and OBSERVED recurring
    around harvest. The ledger does not enforce any ordering.
    """

    HARVESTED = "HARVESTED"
    INPUT_APPLIED = "INPUT_APPLIED"
    OBSERVED = "OBSERVED"
    PROCESSED = "PROCESSED"
    PACKAGED = "PACKAGED"
    SHIPPED = "SHIPPED"
    RECEIVED = "RECEIVED"
    SOLD = "SOLD"
    CONSUMED = "CONSUMED"


class EventScope(str, Enum):
    """Primary scope of an event."""

    UNIT = "unit"  # post-identity, keyed by vti id
    FIELD = "field"  # pre-identity, keyed by field context


def parse_event_type(value: "EventType | str | None") -> EventType:
    """Coerce a string into an EventType."""
    if isinstance(value, EventType):
        return value
    if not value or not isinstance(value, str):
        raise ValidationError("eventType is required and must be a string")
    try:
        return EventType(value.upper())
    except ValueError:
        raise ValidationError(f"Unknown eventType: {value}") from None
