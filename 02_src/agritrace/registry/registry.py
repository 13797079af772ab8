"""VTI registry: mints and reads traceable-unit identities."""

from typing import Any, Protocol

from ..clock import Clock, IdFactory, new_id, utc_now
from ..config import METADATA_PLACEHOLDERS
from ..errors import ConflictError, NotFoundError, ValidationError
from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import GeoPoint, Topic, TraceableUnit, VtiStatus
from ..storage import IStorage

logger = get_logger(__name__)

# Attempts at drawing a fresh id before giving up on a mint
MAX_MINT_ATTEMPTS = 3


class IVtiRegistry(Protocol):
    """Registry of traceable-unit identifiers."""

    def new_unit(
        self,
        type: Any,
        linked_vtis: list[str] | None = None,
        metadata: dict | None = None,
        current_location: Any = None,
        is_public_traceable: bool = True,
    ) -> TraceableUnit:
        """Build and validate an unsaved unit."""
        ...

    async def mint(
        self,
        type: Any,
        linked_vtis: list[str] | None = None,
        metadata: dict | None = None,
        current_location: Any = None,
        is_public_traceable: bool = True,
    ) -> str:
        """Persist a new unit and return its id."""
        ...

    async def notify_minted(self, unit: TraceableUnit) -> None:
        """Publish a UNIT_MINTED notification for a persisted unit."""
        ...

    async def get(self, vti_id: str) -> TraceableUnit:
        """Get a unit; NotFoundError if absent."""
        ...

    async def exists(self, vti_id: str) -> bool:
        """Whether a unit with this id has been minted."""
        ...

    async def recent_public(self, limit: int = 10) -> list[TraceableUnit]:
        """Most recently minted public units."""
        ...


class VtiRegistry:
    """Mints units with random ids and reads them back."""

    def __init__(
        self,
        storage: IStorage,
        event_bus: IEventBus | None = None,
        clock: Clock = utc_now,
        id_factory: IdFactory = new_id,
    ):
        self._storage = storage
        self._event_bus = event_bus
        self._clock = clock
        self._id_factory = id_factory

    def new_unit(
        self,
        type: Any,
        linked_vtis: list[str] | None = None,
        metadata: dict | None = None,
        current_location: Any = None,
        is_public_traceable: bool = True,
    ) -> TraceableUnit:
        """Build and validate an unsaved unit with a fresh id."""
        if not type or not isinstance(type, str):
            raise ValidationError("The 'type' parameter is required and must be a string")

        linked_vtis = list(linked_vtis or [])
        if not all(isinstance(v, str) and v for v in linked_vtis):
            raise ValidationError("linkedVtis must be a list of unit ids")

        if metadata is None:
            metadata = {}
        if not isinstance(metadata, dict):
            raise ValidationError("metadata must be an object")

        location = GeoPoint.from_value(current_location) if current_location else None

        return TraceableUnit(
            id=self._id_factory(),
            type=type,
            creation_time=self._clock(),
            status=VtiStatus.ACTIVE,
            linked_vtis=linked_vtis,
            metadata={**metadata, **METADATA_PLACEHOLDERS},
            is_public_traceable=bool(is_public_traceable),
            current_location=location,
        )

    async def mint(
        self,
        type: Any,
        linked_vtis: list[str] | None = None,
        metadata: dict | None = None,
        current_location: Any = None,
        is_public_traceable: bool = True,
    ) -> str:
        """Persist a new ACTIVE unit and return its id."""
        unit = self.new_unit(
            type,
            linked_vtis=linked_vtis,
            metadata=metadata,
            current_location=current_location,
            is_public_traceable=is_public_traceable,
        )

        for attempt in range(1, MAX_MINT_ATTEMPTS + 1):
            try:
                await self._storage.save_unit(unit)
                break
            except ConflictError:
                if attempt == MAX_MINT_ATTEMPTS:
                    raise
                logger.warning("Unit id collision, drawing a new id", extra={"vti_id": unit.id})
                unit.id = self._id_factory()

        logger.info("Minted %s unit", unit.type, extra={"vti_id": unit.id})
        await self.notify_minted(unit)
        return unit.id

    async def notify_minted(self, unit: TraceableUnit) -> None:
        """Publish a UNIT_MINTED notification for a persisted unit."""
        if self._event_bus:
            await self._event_bus.publish(Topic.UNIT_MINTED, unit.to_dict(), source="vti_registry")

    async def get(self, vti_id: str) -> TraceableUnit:
        """Get a unit; NotFoundError if absent."""
        if not vti_id or not isinstance(vti_id, str):
            raise ValidationError("A vtiId must be provided")

        unit = await self._storage.get_unit(vti_id)
        if unit is None:
            raise NotFoundError(f"VTI with ID {vti_id} not found")
        return unit

    async def exists(self, vti_id: str) -> bool:
        """Whether a unit with this id has been minted."""
        return await self._storage.get_unit(vti_id) is not None

    async def recent_public(self, limit: int = 10) -> list[TraceableUnit]:
        """Most recently minted public units."""
        if limit < 1:
            raise ValidationError("limit must be positive")
        return await self._storage.get_recent_public_units(limit)
