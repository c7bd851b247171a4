from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Protocol

# Static business-hours grid, not configurable per provider
DAY_START_MINUTES = 9 * 60
DAY_END_MINUTES = 18 * 60
SLOT_STEP_MINUTES = 30


class ScheduledInterval(Protocol):
    scheduled_time: str
    duration: int


@dataclass
class TimeSlot:
    time: str
    available: bool = True

    def to_dict(self) -> dict:
        return {"time": self.time, "available": self.available}


def parse_hhmm(value: str) -> int:
    """Minutes since midnight for an ``H:MM`` / ``HH:MM`` 24h string."""
    parsed = datetime.strptime(value.strip(), "%H:%M")
    return parsed.hour * 60 + parsed.minute


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    # Half-open intervals: back-to-back appointments do not collide
    return start_a < end_b and end_a > start_b


def overlaps_any(start: int, duration: int, bookings: Iterable[ScheduledInterval]) -> bool:
    end = start + duration
    for booking in bookings:
        booking_start = parse_hhmm(booking.scheduled_time)
        booking_end = booking_start + booking.duration
        if intervals_overlap(start, end, booking_start, booking_end):
            return True
    return False


def slot_grid() -> List[int]:
    return list(range(DAY_START_MINUTES, DAY_END_MINUTES, SLOT_STEP_MINUTES))


def compute_available_slots(
    service_duration: int,
    bookings: Iterable[ScheduledInterval],
) -> List[TimeSlot]:
    """Free slots on the 09:00-18:00 grid for a service of ``service_duration``.

    ``bookings`` are the provider's blocking bookings for the day. Slots that
    collide with any of them are left out rather than returned as unavailable.
    """
    bookings = list(bookings)
    return [
        TimeSlot(time=format_hhmm(start))
        for start in slot_grid()
        if not overlaps_any(start, service_duration, bookings)
    ]
