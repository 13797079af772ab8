"""Append-only traceability event ledger."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from ..clock import Clock, IdFactory, new_id, utc_now
from ..config import HARVEST_UNIT_TYPE
from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import (
    FIELD_CONTEXT_KEY,
    ActorRef,
    EventType,
    HarvestPayload,
    InputApplicationPayload,
    ObservationPayload,
    Role,
    Topic,
    TraceabilityEvent,
    TraceableUnit,
    parse_event_type,
    parse_payload,
)
from ..registry import IVtiRegistry
from ..storage import IStorage
from .validation import (
    optional_number,
    optional_str,
    parse_datetime,
    parse_geo,
    require_number,
    require_str,
)

logger = get_logger(__name__)

FIELD_ROLES = frozenset({Role.FARMER, Role.ADMIN})

DEFAULT_AI_ANALYSIS = "No AI analysis was performed for this observation."


@dataclass
class HarvestRecord:
    """Result of recording a harvest: the new unit and its birth event."""

    unit: TraceableUnit
    event: TraceabilityEvent


class IEventLedger(Protocol):
    """Append-only store of typed lifecycle events."""

    async def append(
        self,
        event_type: EventType | str,
        actor_ref: ActorRef | str,
        vti_id: str | None = None,
        field_context_id: str | None = None,
        geo_location: Any = None,
        payload: Any = None,
        timestamp: datetime | str | None = None,
    ) -> TraceabilityEvent:
        """Append an event scoped to a unit or a field context."""
        ...

    async def get_event(self, event_id: str) -> TraceabilityEvent:
        """Get an event; NotFoundError if absent."""
        ...

    async def record_harvest(
        self,
        caller_id: str | None,
        field_context_id: str,
        crop_type: str,
        actor_ref: ActorRef | str,
        yield_kg: float | None = None,
        quality_grade: str | None = None,
        geo_location: Any = None,
    ) -> HarvestRecord:
        """Mint a farm batch and log its HARVESTED event."""
        ...

    async def record_input_application(
        self,
        caller_id: str | None,
        field_context_id: str,
        input_id: str,
        application_date: datetime | str,
        quantity: float,
        unit: str,
        actor_ref: ActorRef | str,
        method: str | None = None,
        geo_location: Any = None,
    ) -> TraceabilityEvent:
        """Log an INPUT_APPLIED event against a field context."""
        ...

    async def record_observation(
        self,
        field_context_id: str,
        observation_type: str,
        observation_date: datetime | str,
        details: str,
        actor_ref: ActorRef | str,
        media_urls: list[str] | None = None,
        geo_location: Any = None,
        ai_analysis: str | None = None,
    ) -> TraceabilityEvent:
        """Log an OBSERVED event against a field context."""
        ...


class EventLedger:
    """Generic append plus typed constructors for field and harvest events."""

    def __init__(
        self,
        storage: IStorage,
        registry: IVtiRegistry,
        event_bus: IEventBus | None = None,
        clock: Clock = utc_now,
        id_factory: IdFactory = new_id,
    ):
        self._storage = storage
        self._registry = registry
        self._event_bus = event_bus
        self._clock = clock
        self._id_factory = id_factory

    def _build_event(
        self,
        event_type: EventType | str,
        actor_ref: ActorRef | str,
        vti_id: str | None,
        field_context_id: str | None,
        geo_location: Any,
        payload: Any,
        timestamp: datetime | str | None,
    ) -> TraceabilityEvent:
        vti_id = optional_str(vti_id, "vtiId")
        field_context_id = optional_str(field_context_id, "fieldContextId")
        if not vti_id and not field_context_id:
            raise ValidationError("Either fieldContextId or vtiId is required")

        event_type = parse_event_type(event_type)
        return TraceabilityEvent(
            id=self._id_factory(),
            event_type=event_type,
            actor_ref=ActorRef.parse(actor_ref),
            timestamp=(
                parse_datetime(timestamp, "timestamp") if timestamp is not None else self._clock()
            ),
            payload=parse_payload(event_type, payload),
            vti_id=vti_id,
            field_context_id=field_context_id,
            geo_location=parse_geo(geo_location),
        )

    async def _publish(self, event: TraceabilityEvent) -> None:
        logger.info(
            "Appended %s event",
            event.event_type.value,
            extra={
                "event_id": event.id,
                "vti_id": event.vti_id,
                "field_context_id": event.field_context_id,
            },
        )
        if self._event_bus:
            await self._event_bus.publish(
                Topic.EVENT_APPENDED, event.to_dict(), source="event_ledger"
            )

    async def append(
        self,
        event_type: EventType | str,
        actor_ref: ActorRef | str,
        vti_id: str | None = None,
        field_context_id: str | None = None,
        geo_location: Any = None,
        payload: Any = None,
        timestamp: datetime | str | None = None,
    ) -> TraceabilityEvent:
        """Append an event scoped to a unit or a field context.

        At least one of vti_id / field_context_id must be given; a vti_id must
        name an existing unit. The timestamp defaults to append time.
        """
        event = self._build_event(
            event_type, actor_ref, vti_id, field_context_id, geo_location, payload, timestamp
        )

        if event.vti_id and not await self._registry.exists(event.vti_id):
            raise NotFoundError(f"VTI with ID {event.vti_id} not found")

        await self._storage.save_event(event)
        await self._publish(event)
        return event

    async def get_event(self, event_id: str) -> TraceabilityEvent:
        """Get an event; NotFoundError if absent."""
        event = await self._storage.get_event(event_id)
        if event is None:
            raise NotFoundError(f"Event with ID {event_id} not found")
        return event

    async def _authorize_field_role(self, caller_id: str | None, action: str) -> None:
        user = await self._storage.get_user(caller_id) if caller_id else None
        if user is None or user.role not in FIELD_ROLES:
            logger.warning(
                "Rejected %s event from %s", action, caller_id, extra={"actor": caller_id}
            )
            raise AuthorizationError(f"Only farmers or admins can log {action} events")

    async def record_harvest(
        self,
        caller_id: str | None,
        field_context_id: str,
        crop_type: str,
        actor_ref: ActorRef | str,
        yield_kg: float | None = None,
        quality_grade: str | None = None,
        geo_location: Any = None,
    ) -> HarvestRecord:
        """Mint a farm batch for a harvest and log its HARVESTED event.

        The unit and the event are written in one transaction, so a failure
        leaves neither behind.
        """
        await self._authorize_field_role(caller_id, "harvest")

        field_context_id = require_str(field_context_id, "fieldContextId")
        crop_type = require_str(crop_type, "cropType")
        yield_kg = optional_number(yield_kg, "yieldKg")
        quality_grade = optional_str(quality_grade, "qualityGrade")

        unit = self._registry.new_unit(
            HARVEST_UNIT_TYPE,
            metadata={
                "cropType": crop_type,
                "initialYieldKg": yield_kg,
                "initialQualityGrade": quality_grade,
                FIELD_CONTEXT_KEY: field_context_id,
            },
        )
        event = self._build_event(
            EventType.HARVESTED,
            actor_ref,
            vti_id=unit.id,
            field_context_id=field_context_id,
            geo_location=geo_location,
            payload=HarvestPayload(yield_kg=yield_kg, quality_grade=quality_grade),
            timestamp=None,
        )

        await self._storage.save_unit_with_events(unit, [event])
        await self._registry.notify_minted(unit)
        await self._publish(event)
        return HarvestRecord(unit=unit, event=event)

    async def record_input_application(
        self,
        caller_id: str | None,
        field_context_id: str,
        input_id: str,
        application_date: datetime | str,
        quantity: float,
        unit: str,
        actor_ref: ActorRef | str,
        method: str | None = None,
        geo_location: Any = None,
    ) -> TraceabilityEvent:
        """Log an INPUT_APPLIED event against a field context."""
        await self._authorize_field_role(caller_id, "input application")

        field_context_id = require_str(field_context_id, "fieldContextId")
        payload = InputApplicationPayload(
            input_id=require_str(input_id, "inputId"),
            quantity=require_number(quantity, "quantity"),
            unit=require_str(unit, "unit"),
            application_date=parse_datetime(application_date, "applicationDate").isoformat(),
            method=optional_str(method, "method"),
        )
        if payload.quantity < 0:
            raise ValidationError("Quantity must be non-negative")

        return await self.append(
            EventType.INPUT_APPLIED,
            actor_ref,
            field_context_id=field_context_id,
            geo_location=geo_location,
            payload=payload,
        )

    async def record_observation(
        self,
        field_context_id: str,
        observation_type: str,
        observation_date: datetime | str,
        details: str,
        actor_ref: ActorRef | str,
        media_urls: list[str] | None = None,
        geo_location: Any = None,
        ai_analysis: str | None = None,
    ) -> TraceabilityEvent:
        """Log an OBSERVED event against a field context. Open to any caller."""
        field_context_id = require_str(field_context_id, "fieldContextId")

        media_urls = list(media_urls or [])
        if not all(isinstance(url, str) for url in media_urls):
            raise ValidationError("'mediaUrls' must be a list of strings")

        payload = ObservationPayload(
            observation_type=require_str(observation_type, "observationType"),
            observation_date=parse_datetime(observation_date, "observationDate").isoformat(),
            details=require_str(details, "details"),
            media_urls=media_urls,
            field_context_id=field_context_id,
            ai_analysis=optional_str(ai_analysis, "aiAnalysis") or DEFAULT_AI_ANALYSIS,
        )

        return await self.append(
            EventType.OBSERVED,
            actor_ref,
            field_context_id=field_context_id,
            geo_location=geo_location,
            payload=payload,
        )
