"""Canonical half-hour slot ids and their human-readable labels.

A slot id is ``"{date}T{HH}:{00|30}"``, e.g. ``"2025-03-15T09:30"``, always
read as wall-clock time in the event's timezone.
"""

import re
from collections.abc import Iterable, Iterator
from datetime import date
from typing import NamedTuple

SLOT_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})T([01]\d|2[0-3]):(00|30)$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Slot(NamedTuple):
    date: str
    hour: int
    half: int

    @property
    def minute(self) -> int:
        return 30 if self.half else 0

    @property
    def key(self) -> str:
        return slot_key(self.date, self.hour, self.half)

    @classmethod
    def parse(cls, key: str) -> "Slot":
        m = SLOT_RE.match(key)
        if not m:
            raise ValueError(f"invalid slot: {key}")
        date.fromisoformat(m.group(1))
        return cls(m.group(1), int(m.group(2)), 1 if m.group(3) == "30" else 0)


def slot_key(date_str: str, hour: int, half: int) -> str:
    return f"{date_str}T{hour:02d}:{'30' if half else '00'}"


def is_slot(key: str) -> bool:
    try:
        Slot.parse(key)
    except ValueError:
        return False
    return True


def iter_slots(dates: Iterable[str], start_hour: int, end_hour: int) -> Iterator[Slot]:
    """Yield the slot universe in date, hour, half order.

    Dates are de-duplicated and sorted ascending.
    """
    for d in sorted(set(dates)):
        for hour in range(start_hour, end_hour):
            for half in (0, 1):
                yield Slot(d, hour, half)


def iter_slot_keys(dates: Iterable[str], start_hour: int, end_hour: int) -> Iterator[str]:
    for slot in iter_slots(dates, start_hour, end_hour):
        yield slot.key


def format_hour(hour: int) -> str:
    """``9`` -> ``"9 AM"``, ``0`` -> ``"12 AM"``, ``13`` -> ``"1 PM"``."""
    ampm = "PM" if hour % 24 >= 12 else "AM"
    h = hour % 12 or 12
    return f"{h} {ampm}"


def format_time(hour: int, minute: int) -> str:
    ampm = "PM" if hour >= 12 else "AM"
    h = hour % 12 or 12
    return f"{h}:{minute:02d} {ampm}"


def format_date_header(date_str: str) -> str:
    """``"2025-03-15"`` -> ``"Sat, Mar 15"``."""
    d = date.fromisoformat(date_str)
    return f"{d:%a}, {d:%b} {d.day}"


def slot_label(slot: Slot | str) -> str:
    """Label for a slot read as plain wall-clock time."""
    if isinstance(slot, str):
        slot = Slot.parse(slot)
    return f"{format_date_header(slot.date)}, {format_time(slot.hour, slot.minute)}"
