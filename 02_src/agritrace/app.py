"""Application bootstrap and lifecycle management."""

import os
from typing import Protocol

from .actors import ActorResolver
from .config import resolve_db_path
from .event_bus import EventBus
from .ledger import EventLedger
from .lineage import LineageResolver
from .logging_config import get_logger
from .registry import VtiRegistry
from .storage import IStorage, Storage

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...

    @property
    def storage(self) -> IStorage: ...

    @property
    def registry(self) -> VtiRegistry: ...

    @property
    def ledger(self) -> EventLedger: ...

    @property
    def lineage(self) -> LineageResolver: ...


class Application:
    """Wires storage, registry, ledger and lineage resolver together."""

    def __init__(self, db_path: str | None = None):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._event_bus: EventBus | None = None
        self._registry: VtiRegistry | None = None
        self._actor_resolver: ActorResolver | None = None
        self._ledger: EventLedger | None = None
        self._lineage: LineageResolver | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. EventBus (no dependencies; subscribers attach after start)
        self._event_bus = EventBus()

        # 3. Registry (depends on Storage + EventBus)
        self._registry = VtiRegistry(self._storage, self._event_bus)

        # 4. Ledger (depends on Storage, Registry, EventBus)
        self._ledger = EventLedger(self._storage, self._registry, self._event_bus)

        # 5. Lineage (depends on Storage, Registry, ActorResolver)
        self._actor_resolver = ActorResolver(self._storage)
        self._lineage = LineageResolver(self._storage, self._registry, self._actor_resolver)
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data between test runs."""
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def event_bus(self) -> EventBus:
        """Get event bus instance."""
        if not self._event_bus:
            raise RuntimeError("Application not started")
        return self._event_bus

    @property
    def registry(self) -> VtiRegistry:
        """Get VTI registry instance."""
        if not self._registry:
            raise RuntimeError("Application not started")
        return self._registry

    @property
    def ledger(self) -> EventLedger:
        """Get event ledger instance."""
        if not self._ledger:
            raise RuntimeError("Application not started")
        return self._ledger

    @property
    def lineage(self) -> LineageResolver:
        """Get lineage resolver instance."""
        if not self._lineage:
            raise RuntimeError("Application not started")
        return self._lineage
