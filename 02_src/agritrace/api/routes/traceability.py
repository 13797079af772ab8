"""Traceability API routes."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Header, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...app import IApplication
from ...errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    TraceabilityError,
    ValidationError,
)
from ...logging_config import get_logger

logger = get_logger(__name__)

_STATUS_CODES = {
    ValidationError: 400,
    AuthorizationError: 403,
    NotFoundError: 404,
    ConflictError: 409,
}


class CamelModel(BaseModel):
    """Request body accepting camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Checked by GeoPoint.from_value in the domain layer
GeoLocation = Any


class GenerateVtiRequest(CamelModel):
    type: str
    linked_vtis: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_public_traceable: bool = True
    current_location: GeoLocation = None


class GenerateVtiResponse(BaseModel):
    vtiId: str
    status: str


class LogEventRequest(CamelModel):
    vti_id: str | None = None
    field_context_id: str | None = None
    event_type: str
    actor_ref: str
    geo_location: GeoLocation = None
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime | None = None


class HarvestRequest(CamelModel):
    field_context_id: str
    crop_type: str
    actor_ref: str
    yield_kg: float | None = None
    quality_grade: str | None = None
    geo_location: GeoLocation = None


class InputApplicationRequest(CamelModel):
    field_context_id: str
    input_id: str
    application_date: str
    quantity: float
    unit: str
    actor_ref: str
    method: str | None = None
    geo_location: GeoLocation = None


class ObservationRequest(CamelModel):
    field_context_id: str
    observation_type: str
    observation_date: str
    details: str
    actor_ref: str
    media_urls: list[str] = Field(default_factory=list)
    geo_location: GeoLocation = None
    ai_analysis: str | None = None


class EventLoggedResponse(BaseModel):
    status: str
    message: str
    eventId: str
    vtiId: str | None = None


def _require_caller(caller_id: str | None) -> str:
    if not caller_id:
        raise HTTPException(status_code=401, detail="User not authenticated")
    return caller_id


def _to_http(error: Exception, action: str) -> HTTPException:
    if isinstance(error, HTTPException):
        return error
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    if isinstance(error, TraceabilityError):
        return HTTPException(status_code=400, detail=str(error))
    logger.exception("Failed to %s", action)
    return HTTPException(status_code=500, detail=f"Failed to {action}")


def create_traceability_router(app: IApplication) -> APIRouter:
    """Create traceability router."""
    router = APIRouter(prefix="/api/traceability", tags=["traceability"])

    @router.post("/vti", response_model=GenerateVtiResponse)
    async def generate_vti(
        request: GenerateVtiRequest,
        caller_id: str | None = Header(None, alias="X-User-Id"),
    ) -> dict:
        """Mint a new traceable unit."""
        try:
            _require_caller(caller_id)
            vti_id = await app.registry.mint(
                request.type,
                linked_vtis=request.linked_vtis,
                metadata=request.metadata,
                current_location=request.current_location,
                is_public_traceable=request.is_public_traceable,
            )
            return {"vtiId": vti_id, "status": "success"}
        except Exception as e:
            raise _to_http(e, "generate VTI")

    @router.get("/vti/{vti_id}")
    async def get_vti(vti_id: str) -> dict:
        """Get a traceable unit."""
        try:
            unit = await app.registry.get(vti_id)
            return unit.to_dict()
        except Exception as e:
            raise _to_http(e, "fetch VTI")

    @router.post("/events", response_model=EventLoggedResponse)
    async def log_event(
        request: LogEventRequest,
        caller_id: str | None = Header(None, alias="X-User-Id"),
    ) -> dict:
        """Append a generic traceability event."""
        try:
            _require_caller(caller_id)
            event = await app.ledger.append(
                request.event_type,
                request.actor_ref,
                vti_id=request.vti_id,
                field_context_id=request.field_context_id,
                geo_location=request.geo_location,
                payload=request.payload,
                timestamp=request.timestamp,
            )
            scope = event.vti_id or event.field_context_id
            return {
                "status": "success",
                "message": f"Event {event.event_type.value} logged successfully for {scope}",
                "eventId": event.id,
                "vtiId": event.vti_id,
            }
        except Exception as e:
            raise _to_http(e, "log trace event")

    @router.post("/events/harvest", response_model=EventLoggedResponse)
    async def log_harvest(
        request: HarvestRequest,
        caller_id: str | None = Header(None, alias="X-User-Id"),
    ) -> dict:
        """Record a harvest, minting its farm batch."""
        try:
            record = await app.ledger.record_harvest(
                _require_caller(caller_id),
                field_context_id=request.field_context_id,
                crop_type=request.crop_type,
                actor_ref=request.actor_ref,
                yield_kg=request.yield_kg,
                quality_grade=request.quality_grade,
                geo_location=request.geo_location,
            )
            return {
                "status": "success",
                "message": f"Harvest event logged and VTI {record.unit.id} created.",
                "eventId": record.event.id,
                "vtiId": record.unit.id,
            }
        except Exception as e:
            raise _to_http(e, "handle harvest event")

    @router.post("/events/input-application", response_model=EventLoggedResponse)
    async def log_input_application(
        request: InputApplicationRequest,
        caller_id: str | None = Header(None, alias="X-User-Id"),
    ) -> dict:
        """Record an input applied to a field."""
        try:
            event = await app.ledger.record_input_application(
                _require_caller(caller_id),
                field_context_id=request.field_context_id,
                input_id=request.input_id,
                application_date=request.application_date,
                quantity=request.quantity,
                unit=request.unit,
                actor_ref=request.actor_ref,
                method=request.method,
                geo_location=request.geo_location,
            )
            return {
                "status": "success",
                "message": f"Input application event logged for farm field {event.field_context_id}.",
                "eventId": event.id,
            }
        except Exception as e:
            raise _to_http(e, "handle input application event")

    @router.post("/events/observation", response_model=EventLoggedResponse)
    async def log_observation(
        request: ObservationRequest,
        caller_id: str | None = Header(None, alias="X-User-Id"),
    ) -> dict:
        """Record a field observation."""
        try:
            _require_caller(caller_id)
            event = await app.ledger.record_observation(
                field_context_id=request.field_context_id,
                observation_type=request.observation_type,
                observation_date=request.observation_date,
                details=request.details,
                actor_ref=request.actor_ref,
                media_urls=request.media_urls,
                geo_location=request.geo_location,
                ai_analysis=request.ai_analysis,
            )
            return {
                "status": "success",
                "message": f"Observation event logged for farm field {event.field_context_id}.",
                "eventId": event.id,
            }
        except Exception as e:
            raise _to_http(e, "handle observation event")

    @router.get("/fields/{field_context_id}/events")
    async def get_field_events(
        field_context_id: str,
        caller_id: str | None = Header(None, alias="X-User-Id"),
    ) -> dict:
        """Get all events logged against a farm field."""
        try:
            _require_caller(caller_id)
            events = await app.lineage.field_history(field_context_id)
            return {"events": [e.to_dict() for e in events]}
        except Exception as e:
            raise _to_http(e, "fetch traceability events")

    @router.get("/vti/{vti_id}/history")
    async def get_vti_history(vti_id: str) -> dict:
        """Get a unit's full provenance."""
        try:
            history = await app.lineage.unit_history(vti_id)
            data = history.to_dict()
            return {"vti": data["unit"], "events": data["events"]}
        except Exception as e:
            raise _to_http(e, "fetch traceability history")

    @router.get("/batches/recent")
    async def get_recent_batches(
        limit: int = Query(10, ge=1, le=100),
    ) -> dict:
        """Get recently minted public batches."""
        try:
            batches = await app.lineage.recent_public_units(limit)
            return {"batches": [b.to_dict() for b in batches]}
        except Exception as e:
            raise _to_http(e, "fetch recent batches")

    return router
