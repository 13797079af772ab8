"""Traceable unit (VTI) data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from numbers import Real
from typing import Any

from ..errors import ValidationError

# Metadata key holding the originating field context of a unit
FIELD_CONTEXT_KEY = "fieldContextId"


class VtiStatus(str, Enum):
    """Lifecycle status of a traceable unit."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    EXPIRED = "EXPIRED"
    TRANSFERRED = "TRANSFERRED"


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 coordinate."""

    lat: float
    lng: float

    @classmethod
    def from_value(cls, value: Any) -> "GeoPoint":
        """Build a GeoPoint from a mapping or GeoPoint, validating ranges."""
        if isinstance(value, GeoPoint):
            lat, lng = value.lat, value.lng
        elif isinstance(value, dict):
            lat, lng = value.get("lat"), value.get("lng")
        else:
            raise ValidationError("geoLocation must be an object with lat and lng")

        for name, coord in (("lat", lat), ("lng", lng)):
            # bool is a Real subclass
            if isinstance(coord, bool) or not isinstance(coord, Real):
                raise ValidationError(f"geoLocation.{name} must be a number")
        if not -90 <= lat <= 90:
            raise ValidationError("geoLocation.lat must be within [-90, 90]")
        if not -180 <= lng <= 180:
            raise ValidationError("geoLocation.lng must be within [-180, 180]")

        return cls(lat=float(lat), lng=float(lng))

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass
class TraceableUnit:
    """A registered traceable unit, immutable in identity once minted."""

    id: str
    type: str  # free-form tag, e.g. "farm_batch"
    creation_time: datetime
    status: VtiStatus = VtiStatus.ACTIVE
    linked_vtis: list[str] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)
    is_public_traceable: bool = True
    current_location: GeoPoint | None = None

    @property
    def field_context_id(self) -> str | None:
        """Originating field context, if the unit was born from one."""
        value = self.metadata.get(FIELD_CONTEXT_KEY)
        return value if isinstance(value, str) and value else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "creationTime": self.creation_time.isoformat(),
            "currentLocation": (
                self.current_location.to_dict() if self.current_location else None
            ),
            "status": self.status.value,
            "linkedVtis": list(self.linked_vtis),
            "metadata": dict(self.metadata),
            "isPublicTraceable": self.is_public_traceable,
        }
