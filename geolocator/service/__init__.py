from __future__ import annotations

from .location_service import LocationService

__all__ = [
    "LocationService",
]
