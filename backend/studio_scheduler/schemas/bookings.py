# backend/studio_scheduler/schemas/bookings.py

from datetime import date, datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from .common import ClockStr


class BookingCreate(BaseModel):
    provider_id: int
    title: str = Field(min_length=1)

    # Naive values are read in the provider's timezone
    start_at: datetime
    end_at: datetime

    status: Literal["PENDING", "CONFIRMED"] = "PENDING"
    enforce_working_hours: bool = False

    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class BookingCancel(BaseModel):
    reason: Optional[str] = None


class BookingRead(BaseModel):
    id: int
    provider_id: int
    title: str

    start_at: datetime
    end_at: datetime

    status: str
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None

    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PublicBookingCreate(BaseModel):
    """Self-service request: one slot on one date, provider-local time."""
    date: date
    start_time: ClockStr

    client_name: str = Field(min_length=1)
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    notes: Optional[str] = None
