"""Lineage resolution: reconstructs a unit's provenance from the ledger."""

import asyncio
from typing import Protocol

from ..actors import FIELD_HISTORY_FALLBACK, UNIT_HISTORY_FALLBACK, IActorResolver
from ..config import RECENT_BATCHES_LIMIT
from ..errors import ValidationError
from ..logging_config import get_logger
from ..models import (
    ActorProfile,
    EventType,
    RecentBatch,
    ResolvedEvent,
    TraceabilityEvent,
    UnitHistory,
)
from ..registry import IVtiRegistry
from ..storage import IStorage

logger = get_logger(__name__)

UNKNOWN_PRODUCER = ActorProfile(name="Unknown", role="Unknown")
UNKNOWN_PRODUCT = "Unknown Product"


class ILineageResolver(Protocol):
    """Read side of the traceability core."""

    async def field_history(self, field_context_id: str) -> list[ResolvedEvent]:
        """All events referencing a field context, oldest first."""
        ...

    async def unit_history(self, vti_id: str) -> UnitHistory:
        """A unit with its merged pre- and post-identity events."""
        ...

    async def recent_public_units(self, limit: int = RECENT_BATCHES_LIMIT) -> list[RecentBatch]:
        """Newest public units with their harvest details."""
        ...


def merge_streams(*streams: list[TraceabilityEvent]) -> list[TraceabilityEvent]:
    """Merge event streams into one list ordered by timestamp.

    No stream is assumed to precede another; backdated or clock-skewed
    entries land wherever their timestamp puts them. Ties keep input order.
    """
    seen: set[str] = set()
    merged = []
    for stream in streams:
        for event in stream:
            if event.id not in seen:
                seen.add(event.id)
                merged.append(event)
    return sorted(merged, key=lambda e: e.timestamp)


class LineageResolver:
    """Walks unit -> metadata field context -> pre-identity events."""

    def __init__(
        self,
        storage: IStorage,
        registry: IVtiRegistry,
        actor_resolver: IActorResolver,
    ):
        self._storage = storage
        self._registry = registry
        self._actors = actor_resolver

    async def _annotate(
        self, events: list[TraceabilityEvent], fallback: ActorProfile
    ) -> list[ResolvedEvent]:
        profiles = await self._actors.resolve_many(
            (event.actor_ref for event in events), fallback
        )
        return [ResolvedEvent(event=event, actor=profiles[event.actor_ref]) for event in events]

    async def field_history(self, field_context_id: str) -> list[ResolvedEvent]:
        """All events referencing a field context, oldest first."""
        if not field_context_id or not isinstance(field_context_id, str):
            raise ValidationError("Farm field ID is required")

        events = merge_streams(await self._storage.get_events_for_field(field_context_id))
        return await self._annotate(events, FIELD_HISTORY_FALLBACK)

    async def unit_history(self, vti_id: str) -> UnitHistory:
        """A unit with its merged pre- and post-identity events.

        Linked units are returned on the unit but their histories are not
        followed.
        """
        unit = await self._registry.get(vti_id)

        post_identity = await self._storage.get_events_for_unit(unit.id)
        pre_identity: list[TraceabilityEvent] = []
        if unit.field_context_id:
            pre_identity = await self._storage.get_events_for_field(
                unit.field_context_id, unscoped_only=True
            )

        events = merge_streams(pre_identity, post_identity)
        logger.debug(
            "Resolved %d pre-identity and %d post-identity events",
            len(pre_identity),
            len(post_identity),
            extra={"vti_id": unit.id},
        )
        return UnitHistory(unit=unit, events=await self._annotate(events, UNIT_HISTORY_FALLBACK))

    async def recent_public_units(self, limit: int = RECENT_BATCHES_LIMIT) -> list[RecentBatch]:
        """Newest public units paired with their HARVESTED event, if any."""
        units = await self._registry.recent_public(limit)
        harvests = await asyncio.gather(
            *[self._storage.get_first_event(unit.id, EventType.HARVESTED) for unit in units]
        )

        producers = await self._actors.resolve_many(
            (event.actor_ref for event in harvests if event), UNKNOWN_PRODUCER
        )

        batches = []
        for unit, harvest in zip(units, harvests):
            crop_type = unit.metadata.get("cropType")
            batches.append(
                RecentBatch(
                    unit_id=unit.id,
                    product_name=crop_type if isinstance(crop_type, str) and crop_type else UNKNOWN_PRODUCT,
                    producer_name=(
                        producers[harvest.actor_ref].name if harvest else UNKNOWN_PRODUCER.name
                    ),
                    harvest_date=(harvest.timestamp if harvest else unit.creation_time).isoformat(),
                )
            )
        return batches
