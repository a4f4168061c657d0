# backend/studio_scheduler/services/slots/overlay.py
"""
Booking overlay.

Marks candidate slots free or occupied against the booking store, which is
the only source of truth for committed time. Configuration never implies
occupancy.

Only bookings in BookingConfig.occupying_statuses take part (CANCELLED never
does; PENDING does unless pending_blocks_slots is off).

is_window_free() checks an arbitrary window against bookings only. It does
not check working hours or breaks; callers that want to reject
out-of-hours windows must also consult the resolver.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .calculator import CandidateSlot, overlaps
from .config import BookingConfig, get_booking_config
from .exceptions import CollaboratorUnavailable, InvalidInterval
from .timeutil import day_bounds, ensure_aware, from_utc_iso, to_utc_iso

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotAvailability:
    slot: CandidateSlot
    is_available: bool


def overlay(
    db: Session,
    provider_id: int,
    target_date: date,
    slots: Iterable[CandidateSlot],
    tz: ZoneInfo,
    config: BookingConfig | None = None,
) -> list[SlotAvailability]:
    """Mark each slot available unless it overlaps an occupying booking."""
    config = config or get_booking_config()
    slots = list(slots)

    day_start, day_end = day_bounds(target_date, tz)
    bookings = get_overlapping_bookings(db, provider_id, day_start, day_end, config)
    busy = [(from_utc_iso(b.start_at), from_utc_iso(b.end_at)) for b in bookings]

    result = []
    for slot in slots:
        slot_start, slot_end = slot.bounds(tz)
        taken = any(overlaps(slot_start, slot_end, b_start, b_end) for b_start, b_end in busy)
        result.append(SlotAvailability(slot=slot, is_available=not taken))
    return result


def is_window_free(
    db: Session,
    provider_id: int,
    start: datetime,
    end: datetime,
    tz: ZoneInfo,
    config: BookingConfig | None = None,
    exclude_booking_id: int | None = None,
) -> bool:
    """True when no occupying booking overlaps [start, end)."""
    config = config or get_booking_config()
    start = ensure_aware(start, tz)
    end = ensure_aware(end, tz)
    if end <= start:
        raise InvalidInterval(f"Window end {end.isoformat()} must be after start {start.isoformat()}")

    bookings = get_overlapping_bookings(db, provider_id, start, end, config)
    return not any(b.id != exclude_booking_id for b in bookings)


def get_overlapping_bookings(
    db: Session,
    provider_id: int,
    start: datetime,
    end: datetime,
    config: BookingConfig,
) -> list:
    """
    Occupying bookings for provider overlapping [start, end).

    Timestamps are stored as UTC ISO strings of fixed shape, so string
    comparison orders them correctly.
    """
    from ...models.generated import Bookings

    try:
        return (
            db.query(Bookings)
            .filter(
                Bookings.provider_id == provider_id,
                Bookings.status.in_(config.occupying_statuses),
                Bookings.start_at < to_utc_iso(end),
                Bookings.end_at > to_utc_iso(start),
            )
            .order_by(Bookings.start_at)
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception("Booking store query failed for provider=%s", provider_id)
        raise CollaboratorUnavailable("Could not load bookings") from e
