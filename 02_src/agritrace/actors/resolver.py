"""Resolves actor references to display identities."""

from typing import Iterable, Protocol

from ..logging_config import get_logger
from ..models import ActorKind, ActorProfile, ActorRef, TraceableUnit
from ..storage import IStorage

logger = get_logger(__name__)

# Shown for actors of field-scoped history that cannot be resolved
FIELD_HISTORY_FALLBACK = ActorProfile(name="Unknown Actor", role="System")
# Shown for actors of a unit's lineage that cannot be resolved
UNIT_HISTORY_FALLBACK = ActorProfile(name="System", role="Platform")


class IActorResolver(Protocol):
    """Display-identity lookup for actor references."""

    async def resolve_many(
        self, refs: Iterable[ActorRef], fallback: ActorProfile
    ) -> dict[ActorRef, ActorProfile]:
        """Resolve every distinct ref; unresolved refs map to fallback."""
        ...


def _unit_profile(unit: TraceableUnit) -> ActorProfile:
    name = unit.metadata.get("name")
    return ActorProfile(name=name if isinstance(name, str) and name else unit.type, role=unit.type)


class ActorResolver:
    """Batches lookups per actor kind: users from the identity store, units from the registry."""

    def __init__(self, storage: IStorage):
        self._storage = storage

    async def resolve_many(
        self, refs: Iterable[ActorRef], fallback: ActorProfile
    ) -> dict[ActorRef, ActorProfile]:
        """Resolve every distinct ref; unresolved refs map to fallback."""
        distinct = list(dict.fromkeys(refs))
        user_ids = [ref.id for ref in distinct if ref.kind == ActorKind.USER]
        unit_ids = [ref.id for ref in distinct if ref.kind == ActorKind.UNIT]

        found: dict[ActorRef, ActorProfile] = {}
        if user_ids:
            for user in await self._storage.get_users(user_ids):
                found[ActorRef.user(user.id)] = user.to_profile()
        if unit_ids:
            for unit in await self._storage.get_units(unit_ids):
                found[ActorRef.unit(unit.id)] = _unit_profile(unit)

        missing = len(distinct) - len(found)
        if missing:
            logger.debug("%d of %d actors unresolved", missing, len(distinct))

        return {ref: found.get(ref, fallback) for ref in distinct}

    async def resolve(self, ref: ActorRef, fallback: ActorProfile) -> ActorProfile:
        """Resolve a single ref."""
        resolved = await self.resolve_many([ref], fallback)
        return resolved[ref]
