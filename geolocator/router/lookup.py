from __future__ import annotations

from geolocator.dependencies.geoip import LocationServiceDep
from geolocator.exceptions.lookup import LocationLookupError
from geolocator.log import logger

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

router = APIRouter()


class LookupEvent(BaseModel):
    """查询事件。
    - source_ip: 需要查询的 IP 地址（JSON 字段名为 `source-ip`）。"""

    model_config = ConfigDict(populate_by_name=True)

    source_ip: str = Field(alias="source-ip")


class HealthResp(BaseModel):
    status: str
    database_path: str
    database_loaded: bool


@router.post(
    "/lookup",
    response_class=PlainTextResponse,
    tags=["GeoIP"],
    name="查询 IP 位置",
    description="返回 `ip,城市英文名,ISO 代码` 格式的一行文本。",
)
async def lookup_ip(event: LookupEvent, service: LocationServiceDep):
    try:
        return service.lookup(event.source_ip)
    except LocationLookupError as e:
        if e.status_code >= 500:
            logger.warning(f"Lookup for {event.source_ip} failed [{e.code}]: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message) from e


@router.get(
    "/health",
    response_model=HealthResp,
    tags=["GeoIP"],
    name="健康检查",
)
async def health(service: LocationServiceDep):
    return HealthResp(
        status="ok",
        database_path=str(service.database_path),
        database_loaded=service.loaded,
    )
