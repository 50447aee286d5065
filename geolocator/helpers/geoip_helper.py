"""
GeoIP database updater (asynchronous)

Keeps a gzip archive of the MaxMind City database in a local cache, downloads
it again only when the origin reports a newer copy, and unpacks the database
to a well-known path.
"""

import asyncio
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
import gzip
import os
from pathlib import Path, PurePosixPath
import shutil
import tarfile
import tempfile
import time
from typing import BinaryIO
import zlib

from geolocator.config import COMMERCIAL_URL, LITE_URL
from geolocator.exceptions.refresh import (
    ArchiveFormatError,
    DatabaseNotFoundError,
    InvalidDatabaseFileError,
    MissingLicenseError,
    RefreshError,
    RefreshTransportError,
    UnauthorizedError,
)
from geolocator.log import helper_logger
from geolocator.path import COMMERCIAL_CACHE_NAME, DATABASE_FILENAME, DEFAULT_CACHE_DIR, LITE_CACHE_NAME
from geolocator.utils import format_http_date, parse_http_date

import aiofiles
import httpx
import maxminddb

logger = helper_logger("GeoIPUpdater")


class RefreshTarget(str, Enum):
    LITE = "lite"
    COMMERCIAL = "commercial"


CACHE_NAMES = {
    RefreshTarget.LITE: LITE_CACHE_NAME,
    RefreshTarget.COMMERCIAL: COMMERCIAL_CACHE_NAME,
}


@dataclass
class RefreshResult:
    target: RefreshTarget
    downloaded: bool
    # None when nothing was downloaded; False when Last-Modified was missing or unparsable.
    timestamp_anchored: bool | None
    member_name: str
    database_path: Path


class GeoIPUpdater:
    def __init__(
        self,
        cache_dir: str | Path = DEFAULT_CACHE_DIR,
        database_path: str | Path = DATABASE_FILENAME,
        license_key: str | None = None,
        lite_url: str = LITE_URL,
        commercial_url: str = COMMERCIAL_URL,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cache_dir = Path(cache_dir).expanduser()
        self.database_path = Path(database_path).expanduser()
        self.license_key = license_key or os.getenv("MAXMIND_LICENSE")
        self.lite_url = lite_url
        self.commercial_url = commercial_url
        self.timeout = timeout
        self._transport = transport
        self._update_lock = asyncio.Lock()

    def cache_path(self, target: RefreshTarget) -> Path:
        return self.cache_dir / CACHE_NAMES[target]

    def source_url(self, target: RefreshTarget) -> str:
        if target is RefreshTarget.COMMERCIAL:
            if not self.license_key:
                raise MissingLicenseError()
            return self.commercial_url + self.license_key
        return self.lite_url

    async def refresh(self, target: RefreshTarget | str) -> RefreshResult:
        target = RefreshTarget(target)
        # Resolved before any client exists so a missing license never reaches the network.
        url = self.source_url(target)
        cache_path = self.cache_path(target)

        async with self._update_lock:
            anchored: bool | None = None
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                need_download = await self._is_stale(client, url, cache_path)
                if need_download:
                    anchored = await self._download(client, url, cache_path)

            member_name = await asyncio.to_thread(self._install_database, target, cache_path)
            return RefreshResult(
                target=target,
                downloaded=need_download,
                timestamp_anchored=anchored,
                member_name=member_name,
                database_path=self.database_path,
            )

    async def _is_stale(self, client: httpx.AsyncClient, url: str, cache_path: Path) -> bool:
        try:
            stat = await asyncio.to_thread(cache_path.stat)
        except FileNotFoundError:
            logger.info(f"No archive found at {cache_path}")
            return True
        except OSError as e:
            raise RefreshError(f"Error reading cached archive {cache_path}: {e}", "cache_read") from e

        headers = {"If-Modified-Since": format_http_date(stat.st_mtime)}
        try:
            resp = await client.head(url, headers=headers)
        except httpx.HTTPError as e:
            raise RefreshTransportError("checking archive last modified", str(e)) from e

        if resp.status_code == 401:
            raise UnauthorizedError("HEAD")
        if resp.status_code == 304:
            logger.info("Already have latest archive - skipping download")
            return False
        logger.info(f"We have archive, but it is not latest (HEAD returned {resp.status_code})")
        return True

    async def _download(self, client: httpx.AsyncClient, url: str, cache_path: Path) -> bool:
        """Stream the origin body over the cache file. Returns whether the mtime was anchored to Last-Modified."""
        logger.info(f"Starting archive download to {cache_path}")
        tmp_path: Path | None = None
        try:
            await asyncio.to_thread(cache_path.parent.mkdir, parents=True, exist_ok=True)
            fd, tmp_name = await asyncio.to_thread(
                tempfile.mkstemp, prefix=f".{cache_path.name}.", suffix=".part", dir=cache_path.parent
            )
            os.close(fd)
            tmp_path = Path(tmp_name)

            async with client.stream("GET", url) as resp:
                if resp.status_code == 401:
                    raise UnauthorizedError("GET")
                if not resp.is_success:
                    raise RefreshTransportError("downloading archive", f"HTTP {resp.status_code}")
                last_modified = resp.headers.get("Last-Modified")
                async with aiofiles.open(tmp_path, "wb") as download_file:
                    async for chunk in resp.aiter_bytes():
                        if chunk:
                            await download_file.write(chunk)
            await asyncio.to_thread(os.replace, tmp_path, cache_path)
        except httpx.HTTPError as e:
            raise RefreshTransportError("downloading archive", str(e)) from e
        except OSError as e:
            raise RefreshError(f"Error writing downloaded archive: {e}", "cache_write") from e
        finally:
            if tmp_path is not None:
                with suppress(FileNotFoundError):
                    await asyncio.to_thread(tmp_path.unlink)

        if last_modified is None:
            logger.warning(
                "Origin sent no Last-Modified header; "
                "archive keeps its local write time and the next freshness check is approximate"
            )
            return False
        modified = parse_http_date(last_modified)
        if modified is None:
            logger.warning(
                f"Could not parse Last-Modified header {last_modified!r}; "
                "archive keeps its local write time and the next freshness check is approximate"
            )
            return False

        logger.info(f"Setting archive last modified to: {last_modified}")
        try:
            await asyncio.to_thread(os.utime, cache_path, (time.time(), modified.timestamp()))
        except OSError as e:
            raise RefreshError(f"Error setting archive modification time: {e}", "cache_write") from e
        return True

    def _install_database(self, target: RefreshTarget, cache_path: Path) -> str:
        """Extract into a sibling temp file, validate it, then rename it over the live database."""
        try:
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.database_path.name}.", suffix=".part", dir=self.database_path.parent
            )
            os.close(fd)
        except OSError as e:
            raise RefreshError(f"Error installing database to {self.database_path}: {e}", "install_failed") from e
        tmp_path = Path(tmp_name)

        try:
            member_name = self._extract(target, cache_path, tmp_path)
            self._validate(tmp_path)
            try:
                os.replace(tmp_path, self.database_path)
            except OSError as e:
                raise RefreshError(
                    f"Error installing database to {self.database_path}: {e}", "install_failed"
                ) from e
        finally:
            with suppress(FileNotFoundError):
                tmp_path.unlink()

        logger.info(f"Installed {member_name} to {self.database_path}")
        return member_name

    def _extract(self, target: RefreshTarget, cache_path: Path, dst: Path) -> str:
        try:
            with gzip.open(cache_path, "rb") as archive:
                if target is RefreshTarget.COMMERCIAL:
                    member_name = self._extract_tar_member(archive, dst)
                    if member_name is None:
                        raise DatabaseNotFoundError(cache_path)
                    return member_name

                logger.info(f"Extracting {DATABASE_FILENAME}")
                with open(dst, "wb") as f:
                    shutil.copyfileobj(archive, f)
                return DATABASE_FILENAME
        except (gzip.BadGzipFile, EOFError, zlib.error, tarfile.TarError) as e:
            raise ArchiveFormatError(cache_path, str(e)) from e
        except OSError as e:
            raise RefreshError(f"Error extracting database from {cache_path}: {e}", "extract_failed") from e

    @staticmethod
    def _extract_tar_member(fileobj: BinaryIO, dst: Path) -> str | None:
        """Copy the first regular ``*.mmdb`` member of a tar stream to ``dst``.

        Members are read in stream order and the walk stops at the first match,
        so later members are never read. Returns the member's base name.
        """
        with tarfile.open(fileobj=fileobj, mode="r|") as tar:
            for member in tar:
                if not member.isreg():
                    continue
                member_path = PurePosixPath(member.name)
                if member_path.suffix != ".mmdb":
                    continue
                src = tar.extractfile(member)
                if src is None:
                    continue
                logger.info(f"Extracting {member_path.name}")
                with open(dst, "wb") as f:
                    shutil.copyfileobj(src, f)
                return member_path.name
        return None

    def _validate(self, path: Path) -> None:
        try:
            reader = maxminddb.open_database(str(path), maxminddb.MODE_MEMORY)
        except Exception as e:
            # maxminddb reports malformed metadata as TypeError/KeyError as well as InvalidDatabaseError
            raise InvalidDatabaseFileError(self.database_path, str(e)) from e
        try:
            metadata = reader.metadata()
            logger.info(
                f"Successfully initialized MaxMind database "
                f"({metadata.database_type}, {metadata.node_count} nodes)"
            )
        finally:
            reader.close()
