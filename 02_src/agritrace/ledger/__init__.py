"""Event ledger module."""

from .ledger import EventLedger, HarvestRecord, IEventLedger

__all__ = ["EventLedger", "HarvestRecord", "IEventLedger"]
