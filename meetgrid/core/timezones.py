"""Timezone conversion between an event's canonical grid and viewer zones.

Slots are wall-clock times in the event zone. Converting one to an absolute
instant needs the zone's offset on that specific date, so every conversion
goes through the IANA database via ``zoneinfo``.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from meetgrid.core.slots import Slot, format_date_header, format_time, slot_key, slot_label

logger = logging.getLogger(__name__)

# Major US zones first, then common global ones.
CURATED_TIMEZONE_IDS = [
    "America/Los_Angeles",
    "America/Denver",
    "America/Chicago",
    "America/New_York",
    "America/Anchorage",
    "Pacific/Honolulu",
    "UTC",
    "Europe/London",
    "Europe/Paris",
    "Europe/Berlin",
    "Asia/Dubai",
    "Asia/Kolkata",
    "Asia/Shanghai",
    "Asia/Tokyo",
    "Australia/Sydney",
    "Pacific/Auckland",
    "America/Sao_Paulo",
    "America/Toronto",
    "Europe/Moscow",
]


class InvalidTimezoneError(ValueError):
    """Raised for timezone ids the IANA database does not know."""

    def __init__(self, tz_id: str) -> None:
        self.tz_id = tz_id
        super().__init__(f"unknown timezone: {tz_id}")


@dataclass(frozen=True)
class TimezoneOption:
    value: str
    label: str


@lru_cache(maxsize=256)
def get_zone(tz_id: str) -> ZoneInfo:
    if not tz_id or not tz_id.strip():
        raise InvalidTimezoneError(tz_id)
    try:
        return ZoneInfo(tz_id)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimezoneError(tz_id) from e


def is_valid_timezone(tz_id: str | None) -> bool:
    if tz_id is None:
        return False
    try:
        get_zone(tz_id)
    except InvalidTimezoneError:
        return False
    return True


def _wall_clock(instant: datetime, zone: ZoneInfo) -> datetime:
    return instant.astimezone(zone).replace(tzinfo=None)


def _first_instant_after_gap(earliest: datetime, latest: datetime, zone: ZoneInfo) -> datetime:
    """Binary search for the transition that opened a spring-forward gap.

    ``earliest`` carries the pre-transition offset and ``latest`` the
    post-transition one; offsets change on whole minutes.
    """
    before = earliest.astimezone(zone).utcoffset()
    lo, hi = earliest, latest
    while hi - lo > timedelta(minutes=1):
        mid = lo + (hi - lo) / 2
        mid = mid.replace(second=0, microsecond=0)
        if mid <= lo:
            break
        if mid.astimezone(zone).utcoffset() == before:
            lo = mid
        else:
            hi = mid
    return hi


def wall_to_utc(local: datetime, tz_id: str) -> datetime:
    """Resolve a naive wall-clock datetime in ``tz_id`` to an aware UTC instant.

    Ambiguous times (fall-back overlap) resolve to the earlier instant.
    Nonexistent times (spring-forward gap) resolve to the first valid instant
    after the gap.
    """
    zone = get_zone(tz_id)
    local = local.replace(tzinfo=None)
    first = local.replace(tzinfo=zone, fold=0).astimezone(UTC)
    if _wall_clock(first, zone) == local:
        return first
    second = local.replace(tzinfo=zone, fold=1).astimezone(UTC)
    lo, hi = sorted((first, second))
    return _first_instant_after_gap(lo, hi, zone)


def slot_to_utc(date_str: str, hour: int, half: int, event_timezone: str) -> datetime:
    local = datetime.combine(date.fromisoformat(date_str), datetime.min.time()).replace(
        hour=hour, minute=30 if half else 0
    )
    return wall_to_utc(local, event_timezone)


def utc_to_wall(instant: datetime, tz_id: str) -> datetime:
    """Wall-clock time of ``instant`` in ``tz_id`` (aware, in that zone)."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.astimezone(get_zone(tz_id))


def format_instant(instant: datetime, tz_id: str) -> str:
    local = utc_to_wall(instant, tz_id)
    return f"{format_date_header(local.date().isoformat())}, {format_time(local.hour, local.minute)}"


def format_slot_in_timezone(
    slot: Slot | str,
    event_timezone: str | None,
    viewer_timezone: str | None,
) -> str:
    """Label a canonical slot as the viewer sees it.

    Without both zones there is nothing to convert and the raw wall-clock
    label is returned. Unknown zone ids raise ``InvalidTimezoneError``.
    """
    if isinstance(slot, str):
        slot = Slot.parse(slot)
    if not event_timezone or not viewer_timezone:
        return slot_label(slot)
    instant = slot_to_utc(slot.date, slot.hour, slot.half, event_timezone)
    return format_instant(instant, viewer_timezone)


def safe_format_slot(
    slot: Slot | str,
    event_timezone: str | None,
    viewer_timezone: str | None,
) -> str:
    try:
        return format_slot_in_timezone(slot, event_timezone, viewer_timezone)
    except InvalidTimezoneError as e:
        logger.warning("No conversion for slot %s: %s", slot, e)
        return slot_label(slot)


def convert_slot(slot: Slot | str, from_tz: str | None, to_tz: str | None) -> str | None:
    """Map a slot in ``from_tz`` to the slot id for the same instant in ``to_tz``.

    Returns ``None`` when the converted wall clock does not land on a
    half-hour boundary.
    """
    if isinstance(slot, str):
        slot = Slot.parse(slot)
    if not from_tz or not to_tz:
        return slot.key
    local = utc_to_wall(slot_to_utc(slot.date, slot.hour, slot.half, from_tz), to_tz)
    if local.minute not in (0, 30) or local.second:
        return None
    return slot_key(local.date().isoformat(), local.hour, 1 if local.minute else 0)


def timezone_label(tz_id: str, at: datetime | None = None) -> str:
    """``"America/New_York"`` -> ``"America/New_York (EST)"``."""
    try:
        zone = get_zone(tz_id)
    except InvalidTimezoneError:
        return tz_id
    abbrev = (at or datetime.now(UTC)).astimezone(zone).tzname()
    if abbrev:
        return f"{tz_id} ({abbrev})"
    return tz_id


def get_timezone_options(current: str | None = None, at: datetime | None = None) -> list[TimezoneOption]:
    """Curated zone list; ``current`` is prepended when it is not already in it."""
    options = [TimezoneOption(value=tz, label=timezone_label(tz, at)) for tz in CURATED_TIMEZONE_IDS]
    if current and current.strip() and current not in CURATED_TIMEZONE_IDS:
        options.insert(0, TimezoneOption(value=current, label=timezone_label(current, at)))
    return options
