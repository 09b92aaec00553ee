"""
Reference time parsing.

The operator names the point in time to sample logs around either as
"hh:mm" (today) or "YYYY-MM-DDThh:mm", in the local time zone or in UTC.
"""

from datetime import datetime, timezone, tzinfo
from typing import Optional

from dateutil import tz

from ..config.constants import DEFAULT_LOOKBACK
from ..exceptions import UsageError

CLOCK_FORMAT = "%H:%M"
DATETIME_FORMAT = "%Y-%m-%dT%H:%M"


def parse_reference_time(
    value: Optional[str],
    *,
    utc: bool = False,
    now: Optional[datetime] = None,
    local_tz: Optional[tzinfo] = None,
) -> datetime:
    """
    Parse the reference time given on the command line.

    Args:
        value: "hh:mm", "YYYY-MM-DDThh:mm" or empty for a few minutes ago
        utc: Interpret value in UTC instead of the local time zone
        now: Current time (aware); defaults to the system clock
        local_tz: Local time zone; defaults to the system zone

    Returns:
        Timezone-aware datetime

    Raises:
        UsageError: If value matches neither format

    Examples:
        >>> parse_reference_time("14:30", now=..., local_tz=tz.tzoffset(None, -18000))
        # 14:30-05:00 today, i.e. 19:30 UTC
    """
    zone = timezone.utc if utc else (local_tz or tz.tzlocal())
    if now is None:
        now = datetime.now(timezone.utc)

    if not value:
        return now - DEFAULT_LOOKBACK

    try:
        clock = datetime.strptime(value, CLOCK_FORMAT)
    except ValueError:
        pass
    else:
        today = now.astimezone(zone)
        naive = datetime(
            today.year, today.month, today.day, clock.hour, clock.minute
        )
        return tz.resolve_imaginary(naive.replace(tzinfo=zone))

    try:
        naive = datetime.strptime(value, DATETIME_FORMAT)
    except ValueError:
        raise UsageError(
            f"invalid time {value!r}: use hh:mm for today "
            f"or yyyy-mm-ddThh:mm for an arbitrary date"
        ) from None
    return tz.resolve_imaginary(naive.replace(tzinfo=zone))
