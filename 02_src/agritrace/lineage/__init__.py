"""Lineage resolution module."""

from .resolver import ILineageResolver, LineageResolver

__all__ = ["ILineageResolver", "LineageResolver"]
