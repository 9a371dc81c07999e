"""Aggregate application use cases."""

from .notifications import inbox

__all__ = ["inbox"]
