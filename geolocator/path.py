from __future__ import annotations

from pathlib import Path

DEFAULT_CACHE_DIR = Path.home() / ".cache"
DATABASE_FILENAME = "GeoLite2-City.mmdb"

LITE_CACHE_NAME = "geolite.gz"
COMMERCIAL_CACHE_NAME = "geoip.tar.gz"
