"""
Location lookup service

Owns the read-only handle to the City database. The handle is opened on first
use and shared by every lookup afterwards; ``reload`` drops it so the next
lookup picks up a freshly installed database.
"""

from __future__ import annotations

from collections.abc import Mapping
import ipaddress
from pathlib import Path
import threading
from typing import Any

from geolocator.exceptions.lookup import (
    DatabaseUnavailableError,
    InvalidAddressError,
    LookupFailedError,
)
from geolocator.log import service_logger
from geolocator.models.location import Location, format_line

import maxminddb

logger = service_logger("LocationService")

SOURCE_IP_FIELD = "source-ip"


class LocationService:
    def __init__(self, database_path: str | Path, mode: int = maxminddb.MODE_AUTO):
        self.database_path = Path(database_path).expanduser()
        self.mode = mode
        self._reader: maxminddb.Reader | None = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._reader is not None

    def _get_reader(self) -> maxminddb.Reader:
        reader = self._reader
        if reader is not None:
            return reader
        with self._lock:
            if self._reader is None:
                try:
                    self._reader = maxminddb.open_database(str(self.database_path), self.mode)
                except Exception as e:
                    raise DatabaseUnavailableError(self.database_path, str(e)) from e
                logger.info(f"Opened GeoIP database {self.database_path}")
            return self._reader

    def locate(self, ip_text: str) -> Location:
        try:
            address = ipaddress.ip_address(ip_text)
        except ValueError as e:
            raise InvalidAddressError(ip_text) from e

        reader = self._get_reader()
        try:
            record: Any = reader.get(address)
        except (maxminddb.InvalidDatabaseError, ValueError) as e:
            raise LookupFailedError(ip_text, str(e)) from e

        # Coverage is partial; a missing record is an empty location, not an error.
        return Location.from_record(record)

    def lookup(self, ip_text: str) -> str:
        return format_line(ip_text, self.locate(ip_text))

    def handle(self, event: Mapping[str, Any]) -> str:
        """Answer one inbound event of the form ``{"source-ip": "<address>"}``."""
        ip_text = event.get(SOURCE_IP_FIELD)
        if not isinstance(ip_text, str):
            raise InvalidAddressError(ip_text)
        return self.lookup(ip_text)

    def reload(self) -> None:
        with self._lock:
            old_reader, self._reader = self._reader, None
        if old_reader is not None:
            old_reader.close()
            logger.info(f"Closed GeoIP database {self.database_path}, will reopen on next lookup")

    def close(self) -> None:
        with self._lock:
            reader, self._reader = self._reader, None
        if reader is not None:
            reader.close()
