# ruff: noqa: F401

from .geoip import init_geoip, schedule_geoip_updates, update_geoip_database

__all__ = [
    "init_geoip",
    "schedule_geoip_updates",
    "update_geoip_database",
]
