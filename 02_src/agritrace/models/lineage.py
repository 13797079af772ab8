"""Read models produced by lineage resolution."""

from dataclasses import dataclass, field

from .actors import ActorProfile
from .events import TraceabilityEvent
from .units import TraceableUnit


@dataclass
class ResolvedEvent:
    """An event annotated with its actor's display identity."""

    event: TraceabilityEvent
    actor: ActorProfile

    def to_dict(self) -> dict:
        data = self.event.to_dict()
        data["actor"] = self.actor.to_dict()
        return data


@dataclass
class UnitHistory:
    """A unit and its merged, timestamp-ordered provenance."""

    unit: TraceableUnit
    events: list[ResolvedEvent] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "unit": self.unit.to_dict(),
            "events": [e.to_dict() for e in self.events],
        }


@dataclass
class RecentBatch:
    """Summary of a recently minted public unit."""

    unit_id: str
    product_name: str
    producer_name: str
    harvest_date: str  # ISO-8601

    def to_dict(self) -> dict:
        return {
            "id": self.unit_id,
            "productName": self.product_name,
            "producerName": self.producer_name,
            "harvestDate": self.harvest_date,
        }
