# backend/studio_scheduler/services/slots/availability.py
"""
Availability query surface.

Request for date D:
  resolver (effective config for D) → calculator (candidate slots)
  → overlay (bookings) → result

Candidate slots may come from the Redis cache when one is configured;
occupancy is always computed on-the-fly. The internal calendar view and the
public booking link both go through get_availability() so they can never
disagree.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from redis import Redis
from sqlalchemy.orm import Session

from .calculator import CandidateSlot, generate_slots, overlaps
from .config import BookingConfig, get_booking_config
from .exceptions import ProviderNotFound
from .overlay import SlotAvailability, is_window_free, overlay
from .redis_store import SlotsRedisStore
from .resolver import (
    BreakInterval,
    ClosedDay,
    EffectiveDayConfig,
    SOURCE_TEMPLATE,
    build_day_config,
    config_from_override,
    resolve_provider_day,
)
from .timeutil import date_range, ensure_aware, get_zone, local_today

logger = logging.getLogger(__name__)


@dataclass
class DayAvailability:
    provider_id: int
    date: date
    timezone: str
    slot_duration_minutes: int
    is_closed: bool
    slots: list[SlotAvailability] = field(default_factory=list)
    closed_cause: str | None = None
    reason: str | None = None
    cached: bool = False

    @property
    def open_slots_count(self) -> int:
        return sum(1 for s in self.slots if s.is_available)


# ── Provider settings ────────────────────────────────────────────────────


def get_provider(db: Session, provider_id: int):
    """Get provider by ID or raise ProviderNotFound."""
    from ...models.generated import Providers

    provider = db.get(Providers, provider_id)
    if provider is None:
        raise ProviderNotFound(provider_id)
    return provider


def provider_zone(provider, config: BookingConfig | None = None) -> ZoneInfo:
    config = config or get_booking_config()
    return get_zone(provider.timezone or config.default_timezone)


def provider_slot_duration(provider, config: BookingConfig | None = None) -> int:
    config = config or get_booking_config()
    return provider.slot_duration_minutes or config.slot_duration_minutes


def provider_horizon_days(provider, config: BookingConfig | None = None) -> int:
    config = config or get_booking_config()
    return provider.booking_horizon_days or config.horizon_days


def provider_today(provider, config: BookingConfig | None = None, now: datetime | None = None) -> date:
    return local_today(provider_zone(provider, config), now)


# ── Configuration-derived slots (cacheable) ──────────────────────────────


def compute_day_slots(
    db: Session,
    provider,
    target_date: date,
    config: BookingConfig | None = None,
) -> tuple[EffectiveDayConfig | ClosedDay, list[CandidateSlot]]:
    """Fresh resolve + generate, no cache involved."""
    config = config or get_booking_config()
    effective = resolve_provider_day(db, provider.id, target_date)
    slots = generate_slots(effective, provider_slot_duration(provider, config))
    return effective, slots


def is_cacheable(
    provider,
    target_date: date,
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> bool:
    """
    Only dates in [today, today + horizon] are cached; template writes
    invalidate exactly that window.
    """
    today = provider_today(provider, config, now)
    last_day = today + timedelta(days=provider_horizon_days(provider, config))
    return today <= target_date <= last_day


def get_day_slots(
    db: Session,
    provider,
    target_date: date,
    config: BookingConfig | None = None,
    redis: Redis | None = None,
    now: datetime | None = None,
) -> tuple[list[CandidateSlot], bool]:
    """
    Candidate slots for a day, using the Redis cache when available and
    the date is inside the provider's cache window.

    Returns:
        (slots, cached), cached is True when served from Redis.
    """
    config = config or get_booking_config()
    if redis is not None and is_cacheable(provider, target_date, config, now):
        store = SlotsRedisStore(redis, config)
        cached = store.get_day_slots(provider.id, target_date)
        if cached is not None:
            return cached, True

        # Cache miss; an invalidation during compute makes the store a no-op
        generation = store.generation(provider.id)
        _, slots = compute_day_slots(db, provider, target_date, config)
        store.store_day_slots(provider.id, target_date, slots, generation=generation)
        return slots, False

    # No Redis or outside the window, calculate on the fly
    _, slots = compute_day_slots(db, provider, target_date, config)
    return slots, False


# ── Query surface ────────────────────────────────────────────────────────


def get_effective_config(
    db: Session,
    provider_id: int,
    target_date: date,
) -> EffectiveDayConfig | ClosedDay:
    """Effective configuration for a provider/date (used by previews in the UI)."""
    provider = get_provider(db, provider_id)
    return resolve_provider_day(db, provider.id, target_date)


def get_availability(
    db: Session,
    provider_id: int,
    target_date: date,
    config: BookingConfig | None = None,
    redis: Redis | None = None,
) -> DayAvailability:
    """Slots for a provider/date with availability flags."""
    config = config or get_booking_config()
    provider = get_provider(db, provider_id)
    tz = provider_zone(provider, config)

    # The effective config is always resolved fresh: it is cheap and tells
    # the caller why a day is closed even when slots come from the cache.
    effective = resolve_provider_day(db, provider.id, target_date)
    slots, cached = get_day_slots(db, provider, target_date, config, redis)

    marked = overlay(db, provider.id, target_date, slots, tz, config) if slots else []

    return DayAvailability(
        provider_id=provider.id,
        date=target_date,
        timezone=tz.key,
        slot_duration_minutes=provider_slot_duration(provider, config),
        is_closed=effective.is_closed,
        slots=marked,
        closed_cause=effective.cause if effective.is_closed else None,
        reason=effective.reason,
        cached=cached,
    )


def get_availability_range(
    db: Session,
    provider_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    config: BookingConfig | None = None,
    redis: Redis | None = None,
    now: datetime | None = None,
) -> tuple[date, date, list[DayAvailability]]:
    """
    Availability for every date in a range, clamped to
    [today, today + horizon] in the provider timezone.
    """
    config = config or get_booking_config()
    provider = get_provider(db, provider_id)
    today = provider_today(provider, config, now)
    horizon = provider_horizon_days(provider, config)
    last_day = today + timedelta(days=horizon)

    if start_date is None or start_date < today:
        start_date = today
    if end_date is None or end_date > last_day:
        end_date = last_day
    if end_date < start_date:
        end_date = start_date

    days = [
        get_availability(db, provider.id, dt, config, redis)
        for dt in date_range(start_date, end_date)
    ]
    return start_date, end_date, days


def check_window_free(
    db: Session,
    provider_id: int,
    start: datetime,
    end: datetime,
    config: BookingConfig | None = None,
) -> bool:
    """Booking conflict check for a provider; naive timestamps are provider-local."""
    config = config or get_booking_config()
    provider = get_provider(db, provider_id)
    return is_window_free(db, provider.id, start, end, provider_zone(provider, config), config)


def window_within_working_hours(
    db: Session,
    provider,
    start: datetime,
    end: datetime,
    config: BookingConfig | None = None,
) -> bool:
    """
    True when [start, end) lies inside the effective working window of its
    provider-local date and overlaps no break. Separate from is_window_free,
    which only looks at bookings.
    """
    config = config or get_booking_config()
    tz = provider_zone(provider, config)
    start = ensure_aware(start, tz).astimezone(tz)
    end = ensure_aware(end, tz).astimezone(tz)
    if end <= start or end.date() != start.date():
        return False

    effective = resolve_provider_day(db, provider.id, start.date())
    if effective.is_closed:
        return False

    start_min = start.hour * 60 + start.minute
    end_min = end.hour * 60 + end.minute
    if start_min < effective.start_minutes or end_min > effective.end_minutes:
        return False
    return not any(
        overlaps(start_min, end_min, b.start_minutes, b.end_minutes)
        for b in effective.breaks
    )


def preview_day(
    target_date: date,
    start_time: str | None,
    end_time: str | None,
    breaks: list[BreakInterval],
    *,
    is_override: bool,
    is_enabled: bool = True,
    reason: str | None = None,
    duration_minutes: int | None = None,
) -> tuple[EffectiveDayConfig | ClosedDay, list[CandidateSlot]]:
    """Effective config and slots a pending (unsaved) edit would produce."""
    duration = duration_minutes or get_booking_config().slot_duration_minutes

    if is_override:
        effective = config_from_override(target_date, start_time, end_time, breaks, reason)
    elif not is_enabled:
        effective = ClosedDay(target_date, "template_disabled", source=SOURCE_TEMPLATE)
    elif not start_time or not end_time:
        effective = ClosedDay(target_date, "template_incomplete", source=SOURCE_TEMPLATE)
    else:
        effective = build_day_config(
            target_date, start_time, end_time, breaks, source=SOURCE_TEMPLATE,
        )
    return effective, generate_slots(effective, duration)
