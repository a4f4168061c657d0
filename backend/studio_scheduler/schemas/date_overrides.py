# backend/studio_scheduler/schemas/date_overrides.py

import json
import datetime as dt
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, field_validator, model_validator

from .common import ClockStr, check_window


class OverrideBreak(BaseModel):
    start_time: ClockStr
    end_time: ClockStr
    label: Optional[str] = None

    @model_validator(mode="after")
    def check_interval(self):
        check_window(self.start_time, self.end_time, "break")
        return self

    model_config = {"from_attributes": True}


class DateOverrideCreate(BaseModel):
    provider_id: int
    date: date

    # Both null = closed for the whole day
    start_time: Optional[ClockStr] = None
    end_time: Optional[ClockStr] = None

    breaks: list[OverrideBreak] = []
    reason: Optional[str] = None

    @model_validator(mode="after")
    def check_window_bounds(self):
        check_window(self.start_time, self.end_time, "working window")
        if self.start_time is None and self.breaks:
            raise ValueError("breaks require a working window")
        return self

    model_config = {"from_attributes": True}


class DateOverrideUpdate(BaseModel):
    date: Optional[dt.date] = None
    start_time: Optional[ClockStr] = None
    end_time: Optional[ClockStr] = None
    breaks: Optional[list[OverrideBreak]] = None
    reason: Optional[str] = None

    model_config = {"from_attributes": True}


class DateOverrideRead(BaseModel):
    id: int
    provider_id: int
    date: date

    start_time: Optional[str] = None
    end_time: Optional[str] = None

    breaks: list[OverrideBreak] = []
    reason: Optional[str] = None
    is_closed: bool = False

    created_at: Optional[datetime] = None

    @field_validator("breaks", mode="before")
    @classmethod
    def decode_breaks(cls, v):
        if isinstance(v, str):
            return json.loads(v) if v else []
        return v

    @model_validator(mode="after")
    def set_closed(self):
        self.is_closed = not self.start_time or not self.end_time
        return self

    model_config = {"from_attributes": True}
