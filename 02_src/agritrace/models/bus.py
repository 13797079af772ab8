"""Write-notification data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Topic(str, Enum):
    """EventBus topics."""

    UNIT_MINTED = "unit_minted"
    EVENT_APPENDED = "event_appended"


@dataclass
class BusMessage:
    """A notification published after a registry or ledger write."""

    id: str
    topic: Topic
    payload: dict  # to_dict() of the written record
    source: str  # component that published
    timestamp: datetime
