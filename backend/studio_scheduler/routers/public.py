# backend/studio_scheduler/routers/public.py
"""
Public self-service booking link.

Uses exactly the same engine path as the provider's calendar view
(get_availability), only hiding occupied slots and anything outside
[today, today + horizon] in the provider's timezone.
"""

import logging
from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from redis import Redis
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import Providers as DBProviders
from ..redis_client import get_redis
from ..schemas.availability import DayAvailabilityResponse, day_availability_response
from ..schemas.bookings import BookingRead, PublicBookingCreate
from ..services.booking_writer import create_booking
from ..services.slots import get_availability, get_booking_config
from ..services.slots.availability import (
    provider_horizon_days,
    provider_slot_duration,
    provider_today,
    provider_zone,
)
from ..services.slots.timeutil import combine, time_to_minutes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["public"])


def _get_active_provider(db: Session, slug: str) -> DBProviders:
    provider = (
        db.query(DBProviders)
        .filter(DBProviders.slug == slug, DBProviders.is_active == 1)
        .first()
    )
    if not provider:
        raise HTTPException(status_code=404, detail="Not found")
    return provider


def _check_bookable_date(provider, target_date: date) -> None:
    config = get_booking_config()
    today = provider_today(provider, config)
    horizon = provider_horizon_days(provider, config)

    if target_date < today:
        raise HTTPException(status_code=400, detail="Date cannot be in the past")
    if target_date > today + timedelta(days=horizon):
        raise HTTPException(status_code=400, detail=f"Date cannot be more than {horizon} days ahead")


@router.get("/{slug}/availability", response_model=DayAvailabilityResponse)
def get_public_availability(
    slug: str,
    target_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
):
    """Free slots for one date."""
    provider = _get_active_provider(db, slug)
    _check_bookable_date(provider, target_date)

    day = get_availability(db, provider.id, target_date, redis=redis)
    day.slots = [s for s in day.slots if s.is_available]
    return day_availability_response(day)


@router.post("/{slug}/bookings", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_public_booking(
    slug: str,
    data: PublicBookingCreate,
    db: Session = Depends(get_db),
):
    """Request one slot-length window; lands as PENDING for the provider to confirm."""
    provider = _get_active_provider(db, slug)
    _check_bookable_date(provider, data.date)

    tz = provider_zone(provider)
    start_min = time_to_minutes(data.start_time)
    start = combine(data.date, start_min, tz)
    end = start + timedelta(minutes=provider_slot_duration(provider))

    booking = create_booking(
        db,
        provider,
        title=f"Booking: {data.client_name}",
        start=start,
        end=end,
        enforce_working_hours=True,
        client_name=data.client_name,
        client_email=data.client_email,
        client_phone=data.client_phone,
        notes=data.notes,
    )
    logger.info("Public booking request: provider=%s booking=%s", provider.id, booking.id)
    return booking
