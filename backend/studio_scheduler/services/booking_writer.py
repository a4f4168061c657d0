# backend/studio_scheduler/services/booking_writer.py
"""
Booking write path.

The availability engine only reads. Guaranteeing at most one booking per
window is this module's job: the conflict check and the insert/status change
happen while holding a per-provider lock (plus a row lock on the provider
where the database supports SELECT ... FOR UPDATE), inside one transaction.
"""

import logging
import threading
import weakref
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from ..models.generated import Bookings as DBBookings, Providers as DBProviders
from .slots.availability import provider_zone, window_within_working_hours
from .slots.config import BookingConfig, CANCELLED, CONFIRMED, PENDING, get_booking_config
from .slots.exceptions import InvalidInterval, SchedulingError
from .slots.overlay import is_window_free
from .slots.timeutil import ensure_aware, from_utc_iso, to_utc_iso

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    PENDING: {CONFIRMED, CANCELLED},
    CONFIRMED: {CANCELLED},
    CANCELLED: set(),
}


class BookingConflict(SchedulingError):
    """Window overlaps an existing booking."""


class OutsideWorkingHours(SchedulingError):
    """Window is not inside the provider's effective working hours."""


class InvalidTransition(SchedulingError):
    """Booking status change is not allowed."""


# Entries disappear once no writer holds the lock
_locks: "weakref.WeakValueDictionary[int, threading.Lock]" = weakref.WeakValueDictionary()
_locks_guard = threading.Lock()


@contextmanager
def _provider_write_lock(db: Session, provider_id: int):
    with _locks_guard:
        lock = _locks.get(provider_id)
        if lock is None:
            lock = _locks[provider_id] = threading.Lock()
    with lock:
        # No-op on SQLite; serializes writers across processes on Postgres
        (
            db.query(DBProviders)
            .filter(DBProviders.id == provider_id)
            .with_for_update()
            .first()
        )
        yield


def assert_valid_transition(current: str, target: str) -> None:
    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransition(f"Cannot change booking status {current} -> {target}")


def create_booking(
    db: Session,
    provider,
    *,
    title: str,
    start: datetime,
    end: datetime,
    status: str = PENDING,
    enforce_working_hours: bool = False,
    client_name: str | None = None,
    client_email: str | None = None,
    client_phone: str | None = None,
    notes: str | None = None,
    config: BookingConfig | None = None,
) -> DBBookings:
    """Insert a booking if its window is free; raises BookingConflict otherwise."""
    config = config or get_booking_config()
    if status not in (PENDING, CONFIRMED):
        raise InvalidTransition(f"New bookings must be {PENDING} or {CONFIRMED}, got {status}")

    tz = provider_zone(provider, config)
    start = ensure_aware(start, tz)
    end = ensure_aware(end, tz)
    if end <= start:
        raise InvalidInterval(f"Booking end {end.isoformat()} must be after start {start.isoformat()}")

    if enforce_working_hours and not window_within_working_hours(db, provider, start, end, config):
        raise OutsideWorkingHours("Requested time is outside working hours")

    try:
        with _provider_write_lock(db, provider.id):
            if not is_window_free(db, provider.id, start, end, tz, config):
                raise BookingConflict("Requested time is already booked")

            obj = DBBookings(
                provider_id=provider.id,
                title=title,
                start_at=to_utc_iso(start),
                end_at=to_utc_iso(end),
                status=status,
                client_name=client_name,
                client_email=client_email,
                client_phone=client_phone,
                notes=notes,
            )
            db.add(obj)
            db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(obj)
    logger.info(
        "Booking created: id=%s provider=%s %s..%s status=%s",
        obj.id, provider.id, obj.start_at, obj.end_at, obj.status,
    )
    return obj


def confirm_booking(
    db: Session,
    booking: DBBookings,
    config: BookingConfig | None = None,
) -> DBBookings:
    """PENDING → CONFIRMED, re-checking the window when pending bookings do not block."""
    config = config or get_booking_config()
    assert_valid_transition(booking.status, CONFIRMED)

    provider = db.get(DBProviders, booking.provider_id)
    tz = provider_zone(provider, config)

    try:
        with _provider_write_lock(db, provider.id):
            free = is_window_free(
                db,
                provider.id,
                from_utc_iso(booking.start_at),
                from_utc_iso(booking.end_at),
                tz,
                config,
                exclude_booking_id=booking.id,
            )
            if not free:
                raise BookingConflict("Booking window overlaps another booking")

            booking.status = CONFIRMED
            booking.updated_at = to_utc_iso(datetime.now(timezone.utc))
            db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info("Booking confirmed: id=%s", booking.id)
    return booking


def cancel_booking(
    db: Session,
    booking: DBBookings,
    reason: str | None = None,
) -> DBBookings:
    """Any live booking → CANCELLED. Frees its window immediately."""
    assert_valid_transition(booking.status, CANCELLED)

    booking.status = CANCELLED
    booking.cancel_reason = reason
    booking.updated_at = to_utc_iso(datetime.now(timezone.utc))
    db.commit()
    db.refresh(booking)
    logger.info("Booking cancelled: id=%s", booking.id)
    return booking
