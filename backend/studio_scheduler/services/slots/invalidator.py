# backend/studio_scheduler/services/slots/invalidator.py
"""
Cache invalidation and recomputation for provider slots.

Generated slots are derived data. Without Redis nothing is stored and every
read is already fresh; with Redis, a configuration write must drop exactly
the affected dates before the write is acknowledged:

Triggers:
✓ DailyTemplate created/edited/deleted → every date on the old and new
  weekday, from provider-local today to today + booking horizon
✓ TemplateBreak created/edited/deleted → same dates as its template
✓ DateOverride created/edited/deleted → the old and new date only
✓ Provider timezone / slot duration / horizon changed → all cached dates

Does NOT trigger:
✗ Booking created/cancelled (overlay runs on-the-fly)
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable

from redis import Redis
from sqlalchemy.orm import Session

from .availability import (
    compute_day_slots,
    get_provider,
    is_cacheable,
    provider_horizon_days,
    provider_today,
)
from .calculator import CandidateSlot
from .config import BookingConfig, get_booking_config
from .exceptions import TemplateNotFound
from .redis_store import SlotsRedisStore
from .timeutil import date_range, day_of_week

logger = logging.getLogger(__name__)


def invalidate_provider_cache(
    redis: Redis | None,
    provider_id: int,
    dates: list[date] | None = None,
) -> int:
    """
    Invalidate cached slots for provider.

    Args:
        redis: Redis client (None = caching disabled, nothing to do)
        provider_id: Provider ID
        dates: List of specific dates to invalidate,
               or None to invalidate all cached dates

    Returns:
        Number of deleted cache keys
    """
    if redis is None:
        return 0
    if dates is not None and not dates:
        return 0
    store = SlotsRedisStore(redis)
    # Bump before deleting: a fill racing with us either sees the new
    # generation and skips its store, or stores first and is deleted here
    store.bump_generation(provider_id)
    return store.delete_day_slots(provider_id, dates)


def get_affected_dates_for_weekdays(
    weekdays: Iterable[int],
    start: date,
    horizon_days: int,
) -> list[date]:
    """
    Dates in [start, start + horizon_days] falling on any of weekdays
    (0 = Sunday .. 6 = Saturday).
    """
    wanted = set(weekdays)
    return [
        dt for dt in date_range(start, start + timedelta(days=horizon_days))
        if day_of_week(dt) in wanted
    ]


# ── Configuration write hooks ────────────────────────────────────────────


def on_template_changed(
    db: Session,
    redis: Redis | None,
    provider_id: int,
    weekdays: Iterable[int],
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> list[date]:
    """Invalidate every date on weekdays within the provider horizon."""
    config = config or get_booking_config()
    provider = get_provider(db, provider_id)
    dates = get_affected_dates_for_weekdays(
        weekdays,
        provider_today(provider, config, now),
        provider_horizon_days(provider, config),
    )
    deleted = invalidate_provider_cache(redis, provider.id, dates)
    logger.info(
        "Template change: provider=%s weekdays=%s dates=%d deleted_keys=%d",
        provider.id, sorted(set(weekdays)), len(dates), deleted,
    )
    return dates


def on_override_changed(
    redis: Redis | None,
    provider_id: int,
    dates: Iterable[date],
) -> list[date]:
    """Invalidate exactly the override dates (old and new on a move)."""
    dates = sorted(set(dates))
    deleted = invalidate_provider_cache(redis, provider_id, dates)
    logger.info(
        "Override change: provider=%s dates=%s deleted_keys=%d",
        provider_id, [d.isoformat() for d in dates], deleted,
    )
    return dates


def on_provider_changed(redis: Redis | None, provider_id: int) -> int:
    """Invalidate everything cached for provider."""
    deleted = invalidate_provider_cache(redis, provider_id)
    logger.info("Provider change: provider=%s deleted_keys=%d", provider_id, deleted)
    return deleted


# ── Regeneration ─────────────────────────────────────────────────────────


def regenerate_for_date(
    db: Session,
    provider_id: int,
    target_date: date,
    redis: Redis | None = None,
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> list[CandidateSlot]:
    """
    Recompute one date and, with a cache, replace what is stored. Dates
    outside the provider's cache window are only computed.
    """
    config = config or get_booking_config()
    provider = get_provider(db, provider_id)

    store = None
    if redis is not None and is_cacheable(provider, target_date, config, now):
        store = SlotsRedisStore(redis, config)
        generation = store.generation(provider.id)

    _, slots = compute_day_slots(db, provider, target_date, config)
    if store is not None:
        store.store_day_slots(provider.id, target_date, slots, generation=generation)
    return slots


def regenerate_for_horizon(
    db: Session,
    provider_id: int,
    redis: Redis | None = None,
    weekdays: Iterable[int] | None = None,
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> dict[date, list[CandidateSlot]]:
    """
    Recompute every date from provider-local today to the horizon,
    optionally only those on the given weekdays.
    """
    config = config or get_booking_config()
    provider = get_provider(db, provider_id)
    today = provider_today(provider, config, now)
    horizon = provider_horizon_days(provider, config)

    if weekdays is None:
        dates = date_range(today, today + timedelta(days=horizon))
    else:
        dates = get_affected_dates_for_weekdays(weekdays, today, horizon)

    store = SlotsRedisStore(redis, config) if redis is not None else None
    generation = store.generation(provider.id) if store is not None else None

    days_slots = {}
    for dt in dates:
        _, slots = compute_day_slots(db, provider, dt, config)
        days_slots[dt] = slots

    stored = False
    if store is not None:
        stored = store.store_multiple_days(provider.id, days_slots, generation=generation)

    logger.info(
        "Regenerated provider=%s dates=%d cached=%s",
        provider.id, len(days_slots), stored,
    )
    return days_slots


def regenerate_for_template(
    db: Session,
    template_id: int,
    redis: Redis | None = None,
    config: BookingConfig | None = None,
    now: datetime | None = None,
) -> dict[date, list[CandidateSlot]]:
    """Recompute every date the template's weekday covers within the horizon."""
    from ...models.generated import DailyTemplates

    template = db.get(DailyTemplates, template_id)
    if template is None:
        raise TemplateNotFound(template_id)

    return regenerate_for_horizon(
        db,
        template.provider_id,
        redis,
        weekdays=[template.day_of_week],
        config=config,
        now=now,
    )
