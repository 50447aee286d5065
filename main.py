from contextlib import asynccontextmanager
import json

from geolocator.config import settings
from geolocator.dependencies.geoip import get_location_service
from geolocator.dependencies.scheduler import start_scheduler, stop_scheduler
from geolocator.log import system_logger
from geolocator.router import lookup_router
from geolocator.tasks import init_geoip, schedule_geoip_updates

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    # === on startup ===
    if settings.enable_geoip_updater:
        await init_geoip()
        schedule_geoip_updates()
        start_scheduler()
    else:
        system_logger("GeoIP").info("Updater disabled, serving the existing database")

    yield

    # === on shutdown ===
    stop_scheduler()
    get_location_service().close()


desc = """IP 地理位置查询服务。

## 端点说明

`POST /lookup` 接收 `{"source-ip": "<ip>"}`，返回 `ip,城市英文名,ISO 代码` 格式的一行文本，例如 `81.2.69.160,London,GB-ENG`。

- IP 地址无法解析时返回 400
- 数据库尚未下载或无法打开时返回 503
- 数据库查询出错时返回 500

数据库由 `python -m geolocator.cli lite|commercial` 刷新，或在设置 `ENABLE_GEOIP_UPDATER=1` 后由服务每周自动刷新。
"""

app = FastAPI(
    title="geolocator",
    version="0.1.0",
    lifespan=lifespan,
    description=desc,
)

app.include_router(lookup_router)


@app.get("/", include_in_schema=False)
async def root():
    """根端点"""
    return {"message": "geolocator is running"}


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):  # noqa: ARG001
    return JSONResponse(
        status_code=422,
        content={
            "error": json.dumps(exc.errors(), default=str),
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):  # noqa: ARG001
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=None,  # 禁用uvicorn默认日志配置
        access_log=True,
    )
