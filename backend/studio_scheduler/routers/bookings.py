# backend/studio_scheduler/routers/bookings.py
# PATCH = 405, DELETE = 405; status changes go through /confirm and /cancel

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.generated import Bookings as DBBookings
from ..schemas.bookings import (
    BookingCancel,
    BookingCreate,
    BookingRead,
)
from ..services.booking_writer import cancel_booking, confirm_booking, create_booking
from ..services.slots.availability import get_provider, provider_zone
from ..services.slots.config import CANCELLED
from ..services.slots.timeutil import ensure_aware, to_utc_iso

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _get_booking(db: Session, id: int) -> DBBookings:
    obj = db.get(DBBookings, id)
    if not obj:
        raise HTTPException(status_code=404, detail="Not found")
    return obj


@router.get("/", response_model=list[BookingRead])
def list_bookings(
    provider_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    include_cancelled: bool = True,
    db: Session = Depends(get_db),
):
    query = db.query(DBBookings)

    # Naive range bounds are provider-local, or UTC without a provider
    tz = timezone.utc
    if provider_id is not None:
        query = query.filter(DBBookings.provider_id == provider_id)
        tz = provider_zone(get_provider(db, provider_id))

    if start is not None:
        query = query.filter(DBBookings.end_at > to_utc_iso(ensure_aware(start, tz)))
    if end is not None:
        query = query.filter(DBBookings.start_at < to_utc_iso(ensure_aware(end, tz)))
    if not include_cancelled:
        query = query.filter(DBBookings.status != CANCELLED)
    return query.order_by(DBBookings.start_at).all()


@router.get("/{id}", response_model=BookingRead)
def get_booking(id: int, db: Session = Depends(get_db)):
    return _get_booking(db, id)


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
def create_booking_endpoint(
    data: BookingCreate,
    db: Session = Depends(get_db),
):
    provider = get_provider(db, data.provider_id)
    return create_booking(
        db,
        provider,
        title=data.title,
        start=data.start_at,
        end=data.end_at,
        status=data.status,
        enforce_working_hours=data.enforce_working_hours,
        client_name=data.client_name,
        client_email=data.client_email,
        client_phone=data.client_phone,
        notes=data.notes,
    )


@router.post("/{id}/confirm", response_model=BookingRead)
def confirm_booking_endpoint(id: int, db: Session = Depends(get_db)):
    return confirm_booking(db, _get_booking(db, id))


@router.post("/{id}/cancel", response_model=BookingRead)
def cancel_booking_endpoint(
    id: int,
    data: BookingCancel | None = None,
    db: Session = Depends(get_db),
):
    return cancel_booking(db, _get_booking(db, id), data.reason if data else None)


@router.patch("/{id}")
def patch_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )


@router.delete("/{id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
