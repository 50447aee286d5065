"""
Scheduled Update Service
Periodically refresh the MaxMind GeoIP database
"""

from __future__ import annotations

from geolocator.config import settings
from geolocator.dependencies.geoip import get_geoip_updater, get_location_service
from geolocator.dependencies.scheduler import get_scheduler
from geolocator.exceptions.refresh import RefreshError
from geolocator.log import task_logger

logger = task_logger("geoip_update")


async def update_geoip_database() -> bool:
    """
    Refresh the database for the configured target and reload the lookup service.

    Refresh errors are logged, not raised, so a failed refresh never takes the
    serving process down.
    """
    try:
        logger.info(f"Starting GeoIP database refresh ({settings.geoip_target})...")
        result = await get_geoip_updater().refresh(settings.geoip_target)
    except RefreshError as e:
        logger.error(f"GeoIP database refresh failed [{e.code}]: {e.message}")
        return False
    except Exception as e:
        logger.exception(f"GeoIP database refresh failed: {e}")
        return False

    if result.timestamp_anchored is False:
        logger.warning("GeoIP archive timestamp is not anchored to the origin's Last-Modified")
    get_location_service().reload()
    logger.info("GeoIP database refresh completed successfully")
    return True


async def init_geoip():
    """
    Refresh once at startup; only downloads when the cached archive is stale
    """
    logger.info("Initializing GeoIP database...")
    await update_geoip_database()


def schedule_geoip_updates():
    scheduler = get_scheduler()
    scheduler.add_job(
        update_geoip_database,
        "cron",
        day_of_week=settings.geoip_update_day,
        hour=settings.geoip_update_hour,
        minute=0,
        id="geoip_weekly_update",
        name="Weekly GeoIP database update",
        replace_existing=True,
    )
    logger.info(
        f"GeoIP update task registered: every week on day {settings.geoip_update_day} "
        f"at {settings.geoip_update_hour}:00"
    )
