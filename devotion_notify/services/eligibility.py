"""Delivery window eligibility.

A run is triggered every N minutes by an external scheduler. A recipient is
eligible on a tick when their local wall-clock time is within the tolerance
window around their preferred time, they are active, at least one channel is
enabled, and nothing was sent to them yet today.
"""

import logging
from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from devotion_notify.models.preference import RecipientPreference

logger = logging.getLogger(__name__)

DEFAULT_PREFERRED_TIME = time(8, 0)
DEFAULT_WINDOW_HOURS = 0.25
_HOURS_PER_DAY = 24.0


def parse_preferred_time(value: str | None, default: time = DEFAULT_PREFERRED_TIME) -> time:
    """Parse an "HH:MM" (or "HH:MM:SS") preferred time.

    Missing or malformed values fall back to the default (08:00) rather
    than failing the recipient.
    """
    if not value:
        return default

    parts = value.strip().split(":")
    try:
        hour = int(parts[0])
        minute = int(parts[1]) if len(parts) > 1 else 0
        return time(hour, minute)
    except (ValueError, IndexError):
        logger.warning(
            f"Malformed preferred time {value!r}, using {default.strftime('%H:%M')}",
            extra={"preferred_time": value},
        )
        return default


def resolve_timezone(name: str | None) -> ZoneInfo:
    """Resolve an IANA zone name, falling back to UTC for unknown names."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(
                f"Unknown timezone {name!r}, using UTC",
                extra={"timezone": name},
            )
    return ZoneInfo("UTC")


def local_time(now: datetime, tz_name: str | None) -> datetime:
    """Project an instant into the recipient's timezone."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(resolve_timezone(tz_name))


def _fractional_hour(value: datetime | time) -> float:
    return value.hour + value.minute / 60.0 + value.second / 3600.0


def hour_distance(local_now: datetime, preferred: time) -> float:
    """Distance in hours between local time and preferred time on a 24h clock.

    Wraps around midnight, so 23:55 and 00:05 are 10 minutes apart.
    """
    diff = abs(_fractional_hour(local_now) - _fractional_hour(preferred))
    return min(diff, _HOURS_PER_DAY - diff)


def within_delivery_window(
    now: datetime,
    pref: RecipientPreference,
    window_hours: float = DEFAULT_WINDOW_HOURS,
    default_time: time = DEFAULT_PREFERRED_TIME,
) -> bool:
    """Check whether now falls inside the recipient's delivery window."""
    local_now = local_time(now, pref.timezone)
    preferred = parse_preferred_time(pref.preferred_time, default_time)
    return hour_distance(local_now, preferred) <= window_hours


def is_eligible(
    now: datetime,
    pref: RecipientPreference,
    already_sent_today: bool,
    window_hours: float = DEFAULT_WINDOW_HOURS,
    default_time: time = DEFAULT_PREFERRED_TIME,
) -> bool:
    """Decide whether the recipient should receive their daily message now.

    Args:
        now: Current instant (naive values are treated as UTC)
        pref: Recipient preferences
        already_sent_today: Whether a sent record exists for today
        window_hours: Tolerance around the preferred time
        default_time: Fallback when the preferred time is unusable

    Returns:
        True if the recipient is due now
    """
    if already_sent_today:
        return False
    if not pref.is_active:
        return False
    if not pref.has_enabled_channel:
        return False

    return within_delivery_window(now, pref, window_hours, default_time)
