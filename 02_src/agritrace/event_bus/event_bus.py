"""EventBus implementation for write notifications."""

import asyncio
from typing import Awaitable, Callable, Protocol

from ..clock import Clock, IdFactory, new_id, utc_now
from ..logging_config import get_logger
from ..models import BusMessage, Topic

logger = get_logger(__name__)


TopicHandler = Callable[[BusMessage], Awaitable[None]]


class IEventBus(Protocol):
    """In-memory pub/sub notifying downstream subscribers (e.g. a search indexer)."""

    def subscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Subscribe a handler to a topic."""
        ...

    async def publish(self, topic: Topic, payload: dict, source: str) -> BusMessage:
        """Publish a notification to all subscribers of topic."""
        ...


class EventBus:
    """In-memory pub/sub event bus.

    Subscribers own no state in the traceability store; their failures are
    logged and never propagate to the writer.
    """

    def __init__(self, clock: Clock = utc_now, id_factory: IdFactory = new_id):
        self._clock = clock
        self._id_factory = id_factory
        self._subscribers: dict[Topic, list[TopicHandler]] = {
            topic: [] for topic in Topic
        }

    def subscribe(self, topic: Topic, handler: TopicHandler) -> None:
        """Subscribe a handler to a topic."""
        self._subscribers[topic].append(handler)

    async def publish(self, topic: Topic, payload: dict, source: str) -> BusMessage:
        """Publish a notification to all subscribers of topic."""
        message = BusMessage(
            id=self._id_factory(),
            topic=topic,
            payload=payload,
            source=source,
            timestamp=self._clock(),
        )

        handlers = self._subscribers.get(topic, [])
        if handlers:
            results = await asyncio.gather(
                *[handler(message) for handler in handlers],
                return_exceptions=True,
            )

            for i, result in enumerate(results):
                if isinstance(result, Exception):
                    logger.error(
                        "Error in %s handler %s: %s", topic.value, i, result
                    )

        return message
