# ruff: noqa: I002
from pathlib import Path
from typing import Annotated

from geolocator.path import DATABASE_FILENAME, DEFAULT_CACHE_DIR

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LITE_URL = "http://geolite.maxmind.com/download/geoip/database/GeoLite2-City.mmdb.gz"
COMMERCIAL_URL = "https://www.maxmind.com/app/geoip_download?edition_id=GeoIP2-City&suffix=tar.gz&license_key="


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
        json_schema_extra={
            "paragraphs_desc": {
                "GeoIP 配置": (
                    "`lite` 目标直接下载 gzip 压缩的数据库文件；"
                    "`commercial` 目标下载 tar.gz 归档，需要设置 `MAXMIND_LICENSE`。"
                ),
            }
        },
    )

    # 服务器设置
    host: Annotated[
        str,
        Field(default="0.0.0.0", description="服务器监听地址"),
        "服务器设置",
    ]
    port: Annotated[
        int,
        Field(default=8000, description="服务器监听端口"),
        "服务器设置",
    ]
    debug: Annotated[
        bool,
        Field(default=False, description="是否启用调试模式"),
        "服务器设置",
    ]

    # 日志设置
    log_level: Annotated[
        str,
        Field(default="INFO", description="日志级别"),
        "日志设置",
    ]
    log_dir: Annotated[
        str,
        Field(default="logs", description="日志文件目录，为空表示不写入文件"),
        "日志设置",
    ]

    # GeoIP 配置
    maxmind_license: Annotated[
        str,
        Field(default="", description="MaxMind License Key（commercial 目标必填）"),
        "GeoIP 配置",
    ]
    geoip_lite_url: Annotated[
        str,
        Field(default=LITE_URL, description="lite 数据库下载地址"),
        "GeoIP 配置",
    ]
    geoip_commercial_url: Annotated[
        str,
        Field(default=COMMERCIAL_URL, description="commercial 数据库下载地址（License Key 会追加在末尾）"),
        "GeoIP 配置",
    ]
    geoip_cache_dir: Annotated[
        Path,
        Field(default=DEFAULT_CACHE_DIR, description="下载归档的缓存目录"),
        "GeoIP 配置",
    ]
    geoip_database_path: Annotated[
        Path,
        Field(default=Path(DATABASE_FILENAME), description="解压后的数据库文件路径"),
        "GeoIP 配置",
    ]
    geoip_timeout: Annotated[
        float,
        Field(default=60.0, description="下载请求超时时间（秒）"),
        "GeoIP 配置",
    ]
    geoip_target: Annotated[
        str,
        Field(default="lite", description="服务内定时更新使用的目标：lite 或 commercial"),
        "GeoIP 配置",
    ]
    enable_geoip_updater: Annotated[
        bool,
        Field(default=False, description="是否在服务启动时及每周定时更新数据库"),
        "GeoIP 配置",
    ]
    geoip_update_day: Annotated[
        int,
        Field(default=1, description="GeoIP 每周更新的星期几（0=周一，6=周日）"),
        "GeoIP 配置",
    ]
    geoip_update_hour: Annotated[
        int,
        Field(default=2, description="GeoIP 每周更新时间（小时，0-23）"),
        "GeoIP 配置",
    ]

    @field_validator("geoip_cache_dir", "geoip_database_path", mode="after")
    def expand_user(cls, v: Path) -> Path:
        return v.expanduser()

    @field_validator("geoip_target", mode="after")
    def validate_geoip_target(cls, v: str) -> str:
        if v not in ("lite", "commercial"):
            raise ValueError("geoip_target must be 'lite' or 'commercial'")
        return v


settings = Settings()  # pyright: ignore[reportCallIssue]
