"""Persistent stores used by the generator."""

from .unit_cache import UnitCache, content_digest

__all__ = ["UnitCache", "content_digest"]
