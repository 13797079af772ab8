"""Pytest configuration and fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


class StepClock:
    """Deterministic clock advancing by a fixed step on every read."""

    def __init__(
        self,
        start: datetime = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc),
        step: timedelta = timedelta(minutes=1),
    ):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.now
        self.now += self.step
        return value


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from agritrace.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest.fixture
def clock():
    """Clock shared by registry and ledger."""
    return StepClock()


@pytest.fixture
def event_bus(clock):
    """Create EventBus."""
    from agritrace.event_bus import EventBus

    return EventBus(clock=clock)


@pytest.fixture
def registry(storage, event_bus, clock):
    """Create VtiRegistry over in-memory storage."""
    from agritrace.registry import VtiRegistry

    return VtiRegistry(storage, event_bus, clock=clock)


@pytest.fixture
def ledger(storage, registry, event_bus, clock):
    """Create EventLedger over in-memory storage."""
    from agritrace.ledger import EventLedger

    return EventLedger(storage, registry, event_bus, clock=clock)


@pytest.fixture
def actor_resolver(storage):
    """Create ActorResolver."""
    from agritrace.actors import ActorResolver

    return ActorResolver(storage)


@pytest.fixture
def lineage(storage, registry, actor_resolver):
    """Create LineageResolver."""
    from agritrace.lineage import LineageResolver

    return LineageResolver(storage, registry, actor_resolver)


@pytest_asyncio.fixture
async def users(storage):
    """Seed the identity store with one user per relevant role."""
    from agritrace.models import Role, UserProfile

    seeded = {
        "farmer": UserProfile(
            id="farmer-1", name="Amina Okoro", role=Role.FARMER, avatar_url="https://cdn/a.png"
        ),
        "admin": UserProfile(id="admin-1", name="Platform Admin", role=Role.ADMIN),
        "processor": UserProfile(id="proc-1", name="Kano Mills", role=Role.PROCESSOR),
    }
    for user in seeded.values():
        await storage.save_user(user)
    return seeded
