"""Utility helpers for reusable functionality."""

from .timestamps import (
    app_zone,
    local_now,
    stored_cutoff,
    stored_now,
    to_local,
    to_stored,
)

__all__ = [
    "app_zone",
    "local_now",
    "stored_cutoff",
    "stored_now",
    "to_local",
    "to_stored",
]
