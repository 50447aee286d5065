"""
GeoIP dependency for FastAPI
"""

from functools import lru_cache
from typing import Annotated

from geolocator.config import settings
from geolocator.helpers.geoip_helper import GeoIPUpdater
from geolocator.service.location_service import LocationService

from fastapi import Depends


@lru_cache
def get_geoip_updater() -> GeoIPUpdater:
    """
    获取数据库更新器实例
    使用 lru_cache 确保单例模式
    """
    return GeoIPUpdater(
        cache_dir=settings.geoip_cache_dir,
        database_path=settings.geoip_database_path,
        license_key=settings.maxmind_license,
        lite_url=settings.geoip_lite_url,
        commercial_url=settings.geoip_commercial_url,
        timeout=settings.geoip_timeout,
    )


@lru_cache
def get_location_service() -> LocationService:
    """
    获取查询服务实例，数据库在第一次查询时打开
    """
    return LocationService(settings.geoip_database_path)


LocationServiceDep = Annotated[LocationService, Depends(get_location_service)]
