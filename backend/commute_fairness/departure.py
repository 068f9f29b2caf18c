from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigurationError
from .settings import DeparturePolicy, ProviderConfig


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(
            reason_code="invalid_configuration",
            message=f"COMMUTE_TZ '{name}' is not a valid IANA timezone",
        ) from e


def days_until_next_monday(iso_weekday: int) -> int:
    """Days to add so the result is strictly after today (Monday maps to 7)."""
    return (8 - iso_weekday) % 7 or 7


def next_monday_at(now: datetime, *, hour: int = 8) -> datetime:
    """Next Monday at ``hour``:00 in ``now``'s timezone, never today."""
    day = now + timedelta(days=days_until_next_monday(now.isoweekday()))
    return day.replace(hour=hour, minute=0, second=0, microsecond=0)


def now_plus_offset(now: datetime, *, minutes: int = 5) -> datetime:
    # Elapsed time, not wall time: a DST fold must not shift the result.
    return (now.astimezone(timezone.utc) + timedelta(minutes=minutes)).astimezone(now.tzinfo)


def departure_datetime(
    policy: DeparturePolicy,
    *,
    now: datetime | None = None,
    offset_min: int = 5,
    hour: int = 8,
    tz_name: str = "Europe/Berlin",
) -> datetime:
    zone = _zone(tz_name)
    utc_now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    if policy == "next_monday":
        return next_monday_at(utc_now.astimezone(zone), hour=hour)
    if policy == "now_plus_offset":
        return now_plus_offset(utc_now, minutes=offset_min)
    raise ConfigurationError(
        reason_code="invalid_configuration",
        message=f"unknown departure policy: {policy!r}",
    )


def departure_timestamp(config: ProviderConfig, *, now: datetime | None = None) -> int:
    """Epoch seconds for the configured departure policy."""
    when = departure_datetime(
        config.departure_policy,
        now=now,
        offset_min=config.departure_offset_min,
        hour=config.departure_hour,
        tz_name=config.commute_tz,
    )
    return int(when.timestamp())
