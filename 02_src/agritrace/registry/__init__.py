"""VTI registry module."""

from .registry import IVtiRegistry, VtiRegistry

__all__ = ["IVtiRegistry", "VtiRegistry"]
