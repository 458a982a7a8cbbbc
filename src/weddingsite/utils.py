from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo

SITE_TIMEZONE = ZoneInfo("Europe/Rome")

_ITALIAN_MONTHS = (
    "gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno",
    "luglio", "agosto", "settembre", "ottobre", "novembre", "dicembre",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso_utc(moment: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision and a Z suffix."""
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_italian_datetime(moment: Optional[datetime] = None) -> str:
    """
    Format a datetime for Italian readers in the site's timezone.

    Args:
        moment: The datetime to format. If None, uses the current time.

    Returns:
        e.g. "18 ottobre 2026 alle 14:05 CEST"
    """
    if moment is None:
        moment = utc_now()
    local = moment.astimezone(SITE_TIMEZONE)
    month = _ITALIAN_MONTHS[local.month - 1]
    return f"{local.day} {month} {local.year} alle {local:%H:%M} {local.tzname()}"


def json_default(value):
    """json.dumps hook for the Decimal values boto3 returns for DynamoDB numbers."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
