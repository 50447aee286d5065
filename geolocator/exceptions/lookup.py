"""
IP 查询相关的异常类
"""

from __future__ import annotations

from pathlib import Path


class LocationLookupError(Exception):
    """IP 查询错误基类"""

    status_code = 500

    def __init__(self, message: str, code: str = "lookup_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidAddressError(LocationLookupError):
    """客户端传入的 IP 地址无法解析"""

    status_code = 400

    def __init__(self, ip: object):
        super().__init__(f"{ip!r} does not appear to be an IPv4 or IPv6 address", "invalid_address")
        self.ip = ip


class DatabaseUnavailableError(LocationLookupError):
    """数据库尚未准备好（未下载或无法打开）"""

    status_code = 503

    def __init__(self, path: Path, reason: str):
        super().__init__(f"GeoIP database {path} is unavailable: {reason}", "database_unavailable")
        self.path = path
        self.reason = reason


class LookupFailedError(LocationLookupError):
    """数据库查询过程中出错"""

    def __init__(self, ip: str, reason: str):
        super().__init__(f"Error looking up {ip}: {reason}", "lookup_failed")
        self.ip = ip
        self.reason = reason
