# backend/studio_scheduler/schemas/availability.py
"""
Pydantic schemas for availability API.
"""

import datetime as dt
from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, model_validator

from .common import ClockStr, check_window
from .date_overrides import OverrideBreak


class SlotRead(BaseModel):
    """A generated slot, without occupancy."""
    id: str  # "slot-HH:MM-HH:MM"
    date: date
    start_time: str
    end_time: str
    title: str
    description: str
    source_template_id: Optional[int] = None

    model_config = {"from_attributes": True}


class SlotAvailabilityRead(SlotRead):
    is_available: bool


class DayAvailabilityResponse(BaseModel):
    """Slots for one provider/date with occupancy applied."""
    provider_id: int
    date: date
    timezone: str
    slot_duration_minutes: int

    is_closed: bool
    closed_cause: Optional[str] = None
    reason: Optional[str] = None

    slots: list[SlotAvailabilityRead]
    open_slots_count: int
    cached: bool = False


class CalendarDayStatus(BaseModel):
    """Status of a single day in calendar."""
    date: date
    is_closed: bool
    has_slots: bool
    open_slots_count: int = 0
    total_slots: int = 0


class CalendarResponse(BaseModel):
    """Response with calendar of available days."""
    provider_id: int
    start_date: date
    end_date: date
    days: list[CalendarDayStatus]

    # Metadata
    timezone: str
    horizon_days: int
    slot_duration_minutes: int


class WindowFreeResponse(BaseModel):
    provider_id: int
    start: datetime
    end: datetime
    is_free: bool


class BreakRead(BaseModel):
    start_time: str
    end_time: str
    label: Optional[str] = None

    model_config = {"from_attributes": True}


class EffectiveConfigResponse(BaseModel):
    """Resolved working window for a date, or a closed day."""
    date: date
    is_closed: bool
    closed_cause: Optional[str] = None
    source: Optional[str] = Field(None, description="'override' or 'template'")
    template_id: Optional[int] = None
    override_id: Optional[int] = None

    start_time: Optional[str] = None
    end_time: Optional[str] = None
    breaks: list[BreakRead] = []
    reason: Optional[str] = None


class PreviewRequest(BaseModel):
    """Unsaved template or override edit to preview for one date."""
    kind: Literal["template", "override"]
    date: date

    start_time: Optional[ClockStr] = None
    end_time: Optional[ClockStr] = None
    is_enabled: bool = True
    breaks: list[OverrideBreak] = []
    reason: Optional[str] = None

    provider_id: Optional[int] = None
    slot_duration_minutes: Optional[int] = Field(None, gt=0, lt=1440)

    @model_validator(mode="after")
    def check_window_bounds(self):
        check_window(self.start_time, self.end_time, "working window")
        return self


class PreviewResponse(BaseModel):
    effective: EffectiveConfigResponse
    slots: list[SlotRead]


class SlotsGridResponse(BaseModel):
    """Cached slot view (for debugging/admin)."""
    provider_id: int
    date: date
    slots: list[SlotRead]
    total_slots: int
    cached: bool


class InvalidateRequest(BaseModel):
    provider_id: int
    dates: Optional[list[date]] = None


class RegenerateRequest(BaseModel):
    """Either template_id (whole horizon for its weekday) or provider_id + date."""
    template_id: Optional[int] = None
    provider_id: Optional[int] = None
    date: Optional[dt.date] = None

    @model_validator(mode="after")
    def check_target(self):
        if self.template_id is None and (self.provider_id is None or self.date is None):
            raise ValueError("template_id or provider_id + date required")
        return self


class RegenerateResponse(BaseModel):
    provider_id: int
    dates: list[date]
    total_slots: int


# ── Builders from engine objects ─────────────────────────────────────────


def slot_read(slot) -> SlotRead:
    return SlotRead(
        id=slot.id,
        date=slot.date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        title=slot.title,
        description=slot.description,
        source_template_id=slot.source_template_id,
    )


def day_availability_response(day) -> DayAvailabilityResponse:
    return DayAvailabilityResponse(
        provider_id=day.provider_id,
        date=day.date,
        timezone=day.timezone,
        slot_duration_minutes=day.slot_duration_minutes,
        is_closed=day.is_closed,
        closed_cause=day.closed_cause,
        reason=day.reason,
        slots=[
            SlotAvailabilityRead(
                **slot_read(s.slot).model_dump(),
                is_available=s.is_available,
            )
            for s in day.slots
        ],
        open_slots_count=day.open_slots_count,
        cached=day.cached,
    )


def effective_config_response(effective) -> EffectiveConfigResponse:
    if effective.is_closed:
        return EffectiveConfigResponse(
            date=effective.date,
            is_closed=True,
            closed_cause=effective.cause,
            source=effective.source,
            template_id=effective.template_id,
            override_id=effective.override_id,
            reason=effective.reason,
        )
    return EffectiveConfigResponse(
        date=effective.date,
        is_closed=False,
        source=effective.source,
        template_id=effective.template_id,
        override_id=effective.override_id,
        start_time=effective.start_time,
        end_time=effective.end_time,
        breaks=[BreakRead.model_validate(b) for b in effective.breaks],
        reason=effective.reason,
    )
