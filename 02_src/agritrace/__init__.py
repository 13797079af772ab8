"""Traceability core: VTI registry, event ledger and lineage resolution."""

from .actors import ActorResolver, IActorResolver
from .app import Application, IApplication
from .errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    TraceabilityError,
    ValidationError,
)
from .event_bus import EventBus, IEventBus
from .ledger import EventLedger, HarvestRecord, IEventLedger
from .lineage import ILineageResolver, LineageResolver
from .models import (
    ActorKind,
    ActorProfile,
    ActorRef,
    EventType,
    GeoPoint,
    RecentBatch,
    ResolvedEvent,
    Role,
    TraceabilityEvent,
    TraceableUnit,
    UnitHistory,
    UserProfile,
    VtiStatus,
)
from .registry import IVtiRegistry, VtiRegistry
from .storage import IStorage, Storage

__all__ = [
    # Application
    "Application",
    "IApplication",
    # Errors
    "TraceabilityError",
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "ConflictError",
    # Models
    "TraceableUnit",
    "VtiStatus",
    "GeoPoint",
    "TraceabilityEvent",
    "EventType",
    "ActorRef",
    "ActorKind",
    "ActorProfile",
    "Role",
    "UserProfile",
    "ResolvedEvent",
    "UnitHistory",
    "RecentBatch",
    # Components
    "IStorage",
    "Storage",
    "IEventBus",
    "EventBus",
    "IVtiRegistry",
    "VtiRegistry",
    "IEventLedger",
    "EventLedger",
    "HarvestRecord",
    "IActorResolver",
    "ActorResolver",
    "ILineageResolver",
    "LineageResolver",
]
