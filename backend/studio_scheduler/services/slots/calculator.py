# backend/studio_scheduler/services/slots/calculator.py
"""
Slot generation.

Walks the effective working window [start, end) in fixed steps:

✓ a step is a slot only if it ends at or before the window end
  (a shorter trailing remainder is dropped, never emitted)
✓ a step is dropped if it overlaps any break, half-open:
  overlap <=> not (step_end <= break_start or step_start >= break_end)
✓ touching a break boundary is not an overlap
✓ overlapping breaks need no merging, each step is tested against all

Does NOT contain:
✗ Bookings (applied by the overlay)
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterator
from zoneinfo import ZoneInfo

from .exceptions import InvalidInterval
from .resolver import ClosedDay, EffectiveDayConfig, SOURCE_OVERRIDE
from .timeutil import MINUTES_PER_DAY, combine, minutes_to_time, time_to_minutes

DEFAULT_SLOT_DURATION = 60


@dataclass(frozen=True)
class CandidateSlot:
    """One fixed-duration bookable window, derived and never persisted."""
    date: date
    start_time: str
    end_time: str
    title: str = "Available for booking"
    source_template_id: int | None = None

    @property
    def id(self) -> str:
        return f"slot-{self.start_time}-{self.end_time}"

    @property
    def description(self) -> str:
        return f"{self.start_time} - {self.end_time}"

    def bounds(self, tz: ZoneInfo) -> tuple[datetime, datetime]:
        """Absolute [start, end) of the slot in the provider timezone."""
        return (
            combine(self.date, time_to_minutes(self.start_time), tz),
            combine(self.date, time_to_minutes(self.end_time), tz),
        )


def slot_title(config: EffectiveDayConfig) -> str:
    if config.source == SOURCE_OVERRIDE and config.reason:
        return f"Available ({config.reason})"
    return "Available for booking"


def generate_slots(
    config: EffectiveDayConfig | ClosedDay,
    duration_minutes: int = DEFAULT_SLOT_DURATION,
) -> list[CandidateSlot]:
    """
    Enumerate candidate slots for an effective day configuration.

    Returns:
        Slots in ascending time order. Empty list = no bookable time,
        which is a valid outcome (closed day, window covered by breaks).
    """
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise InvalidInterval(f"Slot duration must be an integer, got {duration_minutes!r}")
    if not 0 < duration_minutes < MINUTES_PER_DAY:
        raise InvalidInterval(f"Slot duration must be in (0, 1440), got {duration_minutes}")

    if config.is_closed:
        return []

    title = slot_title(config)
    template_id = config.template_id if config.source != SOURCE_OVERRIDE else None

    return [
        CandidateSlot(
            date=config.date,
            start_time=minutes_to_time(start),
            end_time=minutes_to_time(end),
            title=title,
            source_template_id=template_id,
        )
        for start, end in _walk_window(config, duration_minutes)
    ]


def _walk_window(config: EffectiveDayConfig, step: int) -> Iterator[tuple[int, int]]:
    start_min = config.start_minutes
    end_min = config.end_minutes
    breaks = [(b.start_minutes, b.end_minutes) for b in config.breaks]

    t = start_min
    while t < end_min:
        slot_end = t + step
        if slot_end > end_min:
            break

        if not any(overlaps(t, slot_end, b_start, b_end) for b_start, b_end in breaks):
            yield t, slot_end

        t = slot_end


def overlaps(start_a, end_a, start_b, end_b) -> bool:
    """Half-open interval overlap; shared endpoints do not count."""
    return not (end_a <= start_b or start_a >= end_b)
