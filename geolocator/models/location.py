from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


def _as_mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    if value is None:
        return default
    return str(value)


class Location(BaseModel):
    """一次查询得到的位置信息。
    - city_names: 按语言区分的城市名称。
    - country_iso: 国家 ISO 代码。
    - subdivisions: 行政区 ISO 代码，最具体的在前。"""

    city_names: dict[str, str] = Field(default_factory=dict)
    country_iso: str = ""
    subdivisions: list[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: Any) -> Location:
        """Decode a City database record. Anything that is not a mapping yields an empty location."""
        data = _as_mapping(record)
        city_names = _as_mapping(_as_mapping(data.get("city")).get("names"))
        country = _as_mapping(data.get("country"))
        subdivisions = data.get("subdivisions")
        if not isinstance(subdivisions, list):
            subdivisions = []
        return cls(
            city_names={_as_str(k): _as_str(v) for k, v in city_names.items()},
            country_iso=_as_str(country.get("iso_code")),
            subdivisions=[_as_str(_as_mapping(sub).get("iso_code")) for sub in subdivisions],
        )

    @property
    def city_name(self) -> str:
        return self.city_names.get("en", "")

    @property
    def full_iso(self) -> str:
        """ISO 3166-2 style code, e.g. ``GB-WLS``."""
        if not self.subdivisions:
            return self.country_iso
        return f"{self.country_iso}-{self.subdivisions[0]}"


def format_line(ip: str, location: Location) -> str:
    # Fields are not quoted; a comma inside a city name is emitted as-is.
    return ",".join([ip, location.city_name, location.full_iso])
