"""
数据库刷新相关的异常类
"""

from __future__ import annotations

from pathlib import Path


class RefreshError(Exception):
    """数据库刷新错误基类"""

    def __init__(self, message: str, code: str = "refresh_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class MissingLicenseError(RefreshError):
    """commercial 目标缺少 License Key"""

    def __init__(self):
        super().__init__("MAXMIND_LICENSE is not set", "missing_license")


class UnauthorizedError(RefreshError):
    """源站返回 401"""

    def __init__(self, method: str):
        super().__init__(f"Unauthorized {method} request", "unauthorized")
        self.method = method


class RefreshTransportError(RefreshError):
    """网络请求失败或源站返回非成功状态"""

    def __init__(self, action: str, reason: str):
        super().__init__(f"Error {action}: {reason}", "transport_error")
        self.action = action
        self.reason = reason


class ArchiveFormatError(RefreshError):
    """归档无法解压（gzip 或 tar 格式错误）"""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Error reading archive {path}: {reason}", "archive_format")
        self.path = path
        self.reason = reason


class DatabaseNotFoundError(RefreshError):
    """tar 归档中没有 .mmdb 文件"""

    def __init__(self, path: Path):
        super().__init__(f"No .mmdb entry found in archive {path}", "database_not_found")
        self.path = path


class InvalidDatabaseFileError(RefreshError):
    """解压得到的文件不是有效的 MaxMind 数据库"""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Error initializing MaxMind database {path}: {reason}", "invalid_database")
        self.path = path
        self.reason = reason
