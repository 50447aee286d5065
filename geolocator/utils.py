from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime


def snake_to_pascal(name: str, use_abbr: bool = True) -> str:
    """Convert a snake_case string to PascalCase."""
    if not name:
        return name

    parts = name.split("_")
    if not parts:
        return name

    abbreviations = {
        "ip",
        "url",
        "api",
        "http",
        "https",
        "db",
    }

    result = []
    for part in parts:
        if part.lower() in abbreviations and use_abbr:
            result.append(part.upper())
        else:
            result.append(part.capitalize())

    return "".join(result)


def format_http_date(timestamp: float) -> str:
    """Format a POSIX timestamp as an RFC 1123 date in GMT, e.g. ``Mon, 02 Jan 2006 15:04:05 GMT``."""
    return format_datetime(datetime.fromtimestamp(timestamp, tz=UTC), usegmt=True)


def parse_http_date(value: str | None) -> datetime | None:
    """Parse an HTTP date header. Returns ``None`` when the value is missing or malformed.

    Dates without a zone are interpreted as GMT.
    """
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
