# backend/studio_scheduler/schemas/providers.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from ..services.slots.timeutil import get_zone


def _check_timezone(v: Optional[str]) -> Optional[str]:
    if v is not None:
        get_zone(v)
    return v


class ProviderCreate(BaseModel):
    name: str = Field(min_length=1)
    slug: Optional[str] = Field(None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    email: Optional[str] = None

    timezone: Optional[str] = None
    slot_duration_minutes: Optional[int] = Field(None, gt=0, lt=1440)
    booking_horizon_days: Optional[int] = Field(None, ge=1, le=730)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: Optional[str]) -> Optional[str]:
        return _check_timezone(v)

    model_config = {"from_attributes": True}


class ProviderUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    is_active: Optional[bool] = None

    timezone: Optional[str] = None
    slot_duration_minutes: Optional[int] = Field(None, gt=0, lt=1440)
    booking_horizon_days: Optional[int] = Field(None, ge=1, le=730)

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: Optional[str]) -> Optional[str]:
        return _check_timezone(v)

    model_config = {"from_attributes": True}


class ProviderRead(BaseModel):
    id: int
    name: str
    slug: str
    email: Optional[str] = None

    timezone: str
    slot_duration_minutes: int
    booking_horizon_days: int

    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
