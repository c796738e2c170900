import re
from datetime import time
from typing import Iterator, Tuple

from .. import errors

SLOT_MINUTES = 30

_HHMM = re.compile(r"^(\d{2}):(\d{2})$")


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` string into a ``time``."""
    match = _HHMM.match(value or "")
    if not match:
        raise errors.ValidationError(f"Invalid time '{value}', expected HH:MM format")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise errors.ValidationError(f"Invalid time '{value}', expected HH:MM format")
    return time(hours, minutes)


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def _to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def _from_minutes(total: int) -> time:
    return time(total // 60, total % 60)


class SlotGrid:
    """
    Fixed-length windows covering ``[day_start, day_end)``.

    Iterating yields ``(start, end)`` pairs in ascending order. The grid can be
    iterated any number of times. A trailing window shorter than ``minutes``
    is dropped, and an empty grid is produced when ``day_end <= day_start``.
    """

    def __init__(self, day_start: time, day_end: time, minutes: int = SLOT_MINUTES):
        if minutes <= 0:
            raise ValueError("slot length must be positive")
        self.day_start = day_start
        self.day_end = day_end
        self.minutes = minutes

    def __len__(self) -> int:
        span = _to_minutes(self.day_end) - _to_minutes(self.day_start)
        return max(span, 0) // self.minutes

    def __iter__(self) -> Iterator[Tuple[time, time]]:
        cursor = _to_minutes(self.day_start)
        last = _to_minutes(self.day_end)
        while cursor + self.minutes <= last:
            yield _from_minutes(cursor), _from_minutes(cursor + self.minutes)
            cursor += self.minutes

    def __repr__(self) -> str:
        return (
            f"SlotGrid({format_hhmm(self.day_start)}-{format_hhmm(self.day_end)}, "
            f"{self.minutes}min)"
        )


def generate_slots(day_start: time, day_end: time, minutes: int = SLOT_MINUTES) -> SlotGrid:
    return SlotGrid(day_start, day_end, minutes)
