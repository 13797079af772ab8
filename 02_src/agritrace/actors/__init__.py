"""Actor resolution module."""

from .resolver import (
    FIELD_HISTORY_FALLBACK,
    UNIT_HISTORY_FALLBACK,
    ActorResolver,
    IActorResolver,
)

__all__ = [
    "ActorResolver",
    "IActorResolver",
    "FIELD_HISTORY_FALLBACK",
    "UNIT_HISTORY_FALLBACK",
]
