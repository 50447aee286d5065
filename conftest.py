import os

import pytest

# Keep test runs from writing log files into the working tree.
os.environ.setdefault("LOG_DIR", "")
os.environ.setdefault("ENABLE_GEOIP_UPDATER", "0")

METADATA_MARKER = b"\xab\xcd\xefMaxMind.com"

# Data section type numbers of the MaxMind DB format.
UTF8_STRING, UINT16, UINT32, MAP, UINT64, ARRAY = 2, 5, 6, 7, 9, 11


class Uint(int):
    type_id = UINT32


class Uint16(Uint):
    type_id = UINT16


class Uint64(Uint):
    type_id = UINT64


def _control(type_id: int, size: int) -> bytes:
    assert size < 29
    if type_id <= 7:
        return bytes([(type_id << 5) | size])
    # Extended types keep the type bits zero and put ``type - 7`` in the next byte.
    return bytes([size, type_id - 7])


def encode(value) -> bytes:
    """Encode a small value in the MaxMind DB data section format."""
    if isinstance(value, str):
        data = value.encode()
        return _control(UTF8_STRING, len(data)) + data
    if isinstance(value, Uint):
        data = value.to_bytes((value.bit_length() + 7) // 8, "big")
        return _control(value.type_id, len(data)) + data
    if isinstance(value, dict):
        return _control(MAP, len(value)) + b"".join(encode(k) + encode(v) for k, v in value.items())
    if isinstance(value, list):
        return _control(ARRAY, len(value)) + b"".join(encode(item) for item in value)
    raise TypeError(f"cannot encode {type(value).__name__}")


def build_city_database(record: dict) -> bytes:
    """
    Build an IPv4 City database holding ``record`` for 64.0.0.0/2.

    Two search tree nodes with 24-bit records: node 0 sends a leading 0 bit to
    node 1 and a leading 1 bit nowhere; node 1 sends ``00`` nowhere and ``01``
    to the record at data offset 0. Everything else has no data.
    """
    node_count = 2
    empty = node_count
    data_pointer = node_count + 16
    tree = b"".join(n.to_bytes(3, "big") for n in (1, empty, empty, data_pointer))
    metadata = {
        "binary_format_major_version": Uint16(2),
        "binary_format_minor_version": Uint16(0),
        "build_epoch": Uint64(1_700_000_000),
        "database_type": "GeoIP2-City",
        "description": {"en": "geolocator test database"},
        "ip_version": Uint16(4),
        "languages": ["en"],
        "node_count": Uint(node_count),
        "record_size": Uint16(24),
    }
    return tree + b"\x00" * 16 + encode(record) + METADATA_MARKER + encode(metadata)


LONDON = {
    "city": {"names": {"en": "London", "de": "London"}},
    "country": {"iso_code": "GB"},
    "subdivisions": [{"iso_code": "ENG"}],
}


@pytest.fixture(scope="session")
def city_database() -> bytes:
    """A real, readable City database that maps 64.0.0.0/2 (e.g. 81.2.69.160) to London."""
    return build_city_database(LONDON)
