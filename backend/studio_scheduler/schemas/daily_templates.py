# backend/studio_scheduler/schemas/daily_templates.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, model_validator

from .common import ClockStr, check_window


class TemplateBreakCreate(BaseModel):
    start_time: ClockStr
    end_time: ClockStr
    label: Optional[str] = None

    @model_validator(mode="after")
    def check_interval(self):
        check_window(self.start_time, self.end_time, "break")
        return self

    model_config = {"from_attributes": True}


class TemplateBreakUpdate(BaseModel):
    start_time: Optional[ClockStr] = None
    end_time: Optional[ClockStr] = None
    label: Optional[str] = None

    model_config = {"from_attributes": True}


class TemplateBreakRead(BaseModel):
    id: int
    template_id: int
    start_time: str
    end_time: str
    label: Optional[str] = None

    model_config = {"from_attributes": True}


class DailyTemplateCreate(BaseModel):
    provider_id: int
    day_of_week: int = Field(ge=0, le=6, description="0 = Sunday .. 6 = Saturday")

    start_time: Optional[ClockStr] = None
    end_time: Optional[ClockStr] = None
    is_enabled: bool = True

    breaks: list[TemplateBreakCreate] = []

    @model_validator(mode="after")
    def check_window_bounds(self):
        check_window(self.start_time, self.end_time, "working window")
        return self

    model_config = {"from_attributes": True}


class DailyTemplateUpdate(BaseModel):
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[ClockStr] = None
    end_time: Optional[ClockStr] = None
    is_enabled: Optional[bool] = None

    model_config = {"from_attributes": True}


class DailyTemplateRead(BaseModel):
    id: int
    provider_id: int
    day_of_week: int

    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_enabled: bool

    breaks: list[TemplateBreakRead] = []

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
