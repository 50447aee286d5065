"""
Tests for the location lookup service
"""

from pathlib import Path

from geolocator.exceptions.lookup import (
    DatabaseUnavailableError,
    InvalidAddressError,
    LocationLookupError,
    LookupFailedError,
)
from geolocator.service import location_service
from geolocator.service.location_service import LocationService

import maxminddb
import pytest

RECORDS = {
    "81.2.69.160": {
        "city": {"names": {"en": "London"}},
        "country": {"iso_code": "GB"},
        "subdivisions": [{"iso_code": "ENG"}],
    },
    "2001:218::": {
        "country": {"iso_code": "JP"},
    },
}


class FakeReader:
    def __init__(self, records=None, error=None):
        self.records = records or {}
        self.error = error
        self.closed = False
        self.queries = []

    def get(self, address):
        self.queries.append(address)
        if self.error is not None:
            raise self.error
        return self.records.get(str(address))

    def close(self):
        self.closed = True


@pytest.fixture
def opened(monkeypatch):
    """Replace ``maxminddb.open_database`` and record every reader it hands out."""
    readers: list[FakeReader] = []

    def fake_open(path, mode=maxminddb.MODE_AUTO):
        reader = FakeReader(RECORDS)
        readers.append(reader)
        return reader

    monkeypatch.setattr(location_service.maxminddb, "open_database", fake_open)
    return readers


def test_lookup_formats_matched_record(opened):
    service = LocationService("GeoLite2-City.mmdb")
    assert service.lookup("81.2.69.160") == "81.2.69.160,London,GB-ENG"


def test_lookup_ipv6_country_only(opened):
    service = LocationService("GeoLite2-City.mmdb")
    assert service.lookup("2001:218::") == "2001:218::,,JP"


def test_unmatched_address_is_empty_result(opened):
    service = LocationService("GeoLite2-City.mmdb")
    assert service.lookup("10.1.2.3") == "10.1.2.3,,"
    assert service.lookup("::1") == "::1,,"


def test_invalid_address_is_client_error(opened):
    service = LocationService("GeoLite2-City.mmdb")
    with pytest.raises(InvalidAddressError):
        service.lookup("999.1.1.1")
    with pytest.raises(InvalidAddressError):
        service.lookup("not-an-ip")
    assert opened == []


def test_reader_is_opened_once(opened):
    service = LocationService("GeoLite2-City.mmdb")
    assert not service.loaded
    service.lookup("81.2.69.160")
    service.lookup("10.1.2.3")
    assert service.loaded
    assert len(opened) == 1
    assert len(opened[0].queries) == 2


def test_reload_reopens_database(opened):
    service = LocationService("GeoLite2-City.mmdb")
    service.lookup("81.2.69.160")
    service.reload()
    assert opened[0].closed
    assert not service.loaded

    service.lookup("81.2.69.160")
    assert len(opened) == 2


def test_close_releases_reader(opened):
    service = LocationService("GeoLite2-City.mmdb")
    service.lookup("81.2.69.160")
    service.close()
    assert opened[0].closed
    assert not service.loaded


def test_missing_database_is_unavailable(tmp_path: Path):
    service = LocationService(tmp_path / "GeoLite2-City.mmdb")
    with pytest.raises(DatabaseUnavailableError):
        service.lookup("81.2.69.160")


def test_corrupt_database_is_unavailable(tmp_path: Path):
    path = tmp_path / "GeoLite2-City.mmdb"
    path.write_bytes(b"this is not a maxmind database")
    service = LocationService(path, mode=maxminddb.MODE_MEMORY)
    with pytest.raises(DatabaseUnavailableError):
        service.lookup("81.2.69.160")


def test_database_with_malformed_metadata_is_unavailable(tmp_path: Path):
    # Metadata marker followed by an empty map: decodes, but every required field is missing.
    path = tmp_path / "GeoLite2-City.mmdb"
    path.write_bytes(b"\xab\xcd\xefMaxMind.com\xe0")
    for mode in (maxminddb.MODE_AUTO, maxminddb.MODE_MEMORY):
        service = LocationService(path, mode=mode)
        with pytest.raises(DatabaseUnavailableError):
            service.lookup("81.2.69.160")


@pytest.mark.parametrize("mode", [maxminddb.MODE_AUTO, maxminddb.MODE_MEMORY])
def test_lookup_against_real_database(tmp_path: Path, city_database, mode):
    path = tmp_path / "GeoLite2-City.mmdb"
    path.write_bytes(city_database)
    service = LocationService(path, mode=mode)
    try:
        assert service.lookup("81.2.69.160") == "81.2.69.160,London,GB-ENG"
        assert service.lookup("127.0.0.1") == "127.0.0.1,London,GB-ENG"
        assert service.lookup("10.1.2.3") == "10.1.2.3,,"
        assert service.lookup("200.1.2.3") == "200.1.2.3,,"
        assert service.loaded
    finally:
        service.close()


def test_query_failure_is_internal_error(monkeypatch):
    reader = FakeReader(error=maxminddb.InvalidDatabaseError("corrupt search tree"))
    monkeypatch.setattr(location_service.maxminddb, "open_database", lambda path, mode=0: reader)
    service = LocationService("GeoLite2-City.mmdb")
    with pytest.raises(LookupFailedError):
        service.lookup("81.2.69.160")


def test_error_kinds_are_distinct():
    kinds = [InvalidAddressError, DatabaseUnavailableError, LookupFailedError]
    for kind in kinds:
        assert issubclass(kind, LocationLookupError)
        for other in kinds:
            if other is not kind:
                assert not issubclass(kind, other)
    assert [k.status_code for k in kinds] == [400, 503, 500]


def test_handle_reads_source_ip_field(opened):
    service = LocationService("GeoLite2-City.mmdb")
    assert service.handle({"source-ip": "81.2.69.160"}) == "81.2.69.160,London,GB-ENG"


def test_handle_rejects_missing_source_ip(opened):
    service = LocationService("GeoLite2-City.mmdb")
    with pytest.raises(InvalidAddressError):
        service.handle({})
    with pytest.raises(InvalidAddressError):
        service.handle({"source-ip": 1234})
