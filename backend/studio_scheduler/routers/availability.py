# backend/studio_scheduler/routers/availability.py
"""
Availability API endpoints.

GET  /availability/day              - Slots for a date with availability flags
GET  /availability/calendar         - Per-day summary across the booking horizon
GET  /availability/window-free      - Booking conflict check for any window
GET  /availability/effective-config - Resolved configuration for a date
POST /availability/preview          - Effect of an unsaved template/override edit
GET  /availability/grid             - Cached slots view (admin/debug)
POST /availability/invalidate       - Drop cached slots (admin)
POST /availability/regenerate       - Recompute a date or a template's horizon (admin)
"""

from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import DailyTemplates as DBDailyTemplates
from ..redis_client import get_redis
from ..schemas.availability import (
    CalendarDayStatus,
    CalendarResponse,
    DayAvailabilityResponse,
    EffectiveConfigResponse,
    InvalidateRequest,
    PreviewRequest,
    PreviewResponse,
    RegenerateRequest,
    RegenerateResponse,
    SlotsGridResponse,
    WindowFreeResponse,
    day_availability_response,
    effective_config_response,
    slot_read,
)
from ..services.slots import (
    BreakInterval,
    TemplateNotFound,
    check_window_free,
    get_availability,
    get_availability_range,
    get_booking_config,
    get_effective_config,
    invalidate_provider_cache,
    regenerate_for_date,
    regenerate_for_template,
)
from ..services.slots.availability import (
    get_day_slots,
    get_provider,
    preview_day,
    provider_horizon_days,
    provider_slot_duration,
    provider_zone,
)


router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("/day", response_model=DayAvailabilityResponse)
def get_availability_day(
    provider_id: int,
    target_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Slots for a provider/date, each marked available or occupied."""
    day = get_availability(db, provider_id, target_date, redis=redis)
    return day_availability_response(day)


@router.get("/calendar", response_model=CalendarResponse)
def get_availability_calendar(
    provider_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Calendar of days for a provider, clamped to today..today+horizon."""
    config = get_booking_config()
    provider = get_provider(db, provider_id)

    start_date, end_date, days = get_availability_range(
        db, provider.id, start_date, end_date, config=config, redis=redis,
    )

    return CalendarResponse(
        provider_id=provider.id,
        start_date=start_date,
        end_date=end_date,
        days=[
            CalendarDayStatus(
                date=day.date,
                is_closed=day.is_closed,
                has_slots=day.open_slots_count > 0,
                open_slots_count=day.open_slots_count,
                total_slots=len(day.slots),
            )
            for day in days
        ],
        timezone=provider_zone(provider, config).key,
        horizon_days=provider_horizon_days(provider, config),
        slot_duration_minutes=provider_slot_duration(provider, config),
    )


@router.get("/window-free", response_model=WindowFreeResponse)
def get_window_free(
    provider_id: int,
    start: datetime,
    end: datetime,
    db: Session = Depends(get_db),
):
    """
    Whether [start, end) overlaps no booking. Ignores slot granularity,
    working hours and breaks.
    """
    is_free = check_window_free(db, provider_id, start, end)
    return WindowFreeResponse(provider_id=provider_id, start=start, end=end, is_free=is_free)


@router.get("/effective-config", response_model=EffectiveConfigResponse)
def get_effective_config_endpoint(
    provider_id: int,
    target_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    """Resolved configuration (override or template) for a date."""
    return effective_config_response(get_effective_config(db, provider_id, target_date))


@router.post("/preview", response_model=PreviewResponse)
def preview_configuration(
    data: PreviewRequest,
    db: Session = Depends(get_db),
):
    """Slots a pending template/override edit would produce, without saving it."""
    duration = data.slot_duration_minutes
    if duration is None and data.provider_id is not None:
        duration = provider_slot_duration(get_provider(db, data.provider_id))

    effective, slots = preview_day(
        data.date,
        data.start_time,
        data.end_time,
        [BreakInterval(b.start_time, b.end_time, b.label) for b in data.breaks],
        is_override=data.kind == "override",
        is_enabled=data.is_enabled,
        reason=data.reason,
        duration_minutes=duration,
    )
    return PreviewResponse(
        effective=effective_config_response(effective),
        slots=[slot_read(s) for s in slots],
    )


@router.get("/grid", response_model=SlotsGridResponse)
def get_slots_grid(
    provider_id: int,
    target_date: date = Query(..., alias="date"),
    force_recalc: bool = False,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Cached slot view for provider and date (admin/debug endpoint)."""
    config = get_booking_config()
    provider = get_provider(db, provider_id)

    if force_recalc:
        slots = regenerate_for_date(db, provider.id, target_date, redis, config)
        cached = False
    else:
        slots, cached = get_day_slots(db, provider, target_date, config, redis)

    return SlotsGridResponse(
        provider_id=provider.id,
        date=target_date,
        slots=[slot_read(s) for s in slots],
        total_slots=len(slots),
        cached=cached,
    )


@router.post("/invalidate")
def invalidate_slots_cache(
    data: InvalidateRequest,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Manually invalidate slots cache for provider (admin endpoint)."""
    provider = get_provider(db, data.provider_id)
    deleted = invalidate_provider_cache(redis, provider.id, data.dates or None)

    return {
        "provider_id": provider.id,
        "deleted_keys": deleted,
        "dates": [d.isoformat() for d in data.dates] if data.dates else "all",
    }


@router.post("/regenerate", response_model=RegenerateResponse)
def regenerate_slots(
    data: RegenerateRequest,
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Recompute one date, or every date a template covers (admin endpoint)."""
    if data.template_id is not None:
        template = db.get(DBDailyTemplates, data.template_id)
        if template is None:
            raise TemplateNotFound(data.template_id)
        provider_id = template.provider_id
        days = regenerate_for_template(db, template.id, redis)
    else:
        provider_id = data.provider_id
        days = {data.date: regenerate_for_date(db, provider_id, data.date, redis)}

    return RegenerateResponse(
        provider_id=provider_id,
        dates=sorted(days),
        total_slots=sum(len(slots) for slots in days.values()),
    )
