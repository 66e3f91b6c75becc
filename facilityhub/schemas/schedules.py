import uuid
from datetime import datetime, time
from typing import Optional
from enum import Enum

from pydantic import BaseModel, field_validator


class DayOfWeek(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"


class ScheduleBase(BaseModel):
    title: str
    description: Optional[str] = None
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    room_id: uuid.UUID

    @field_validator("day_of_week", mode="before")
    @classmethod
    def lower_day(cls, v):
        return str(v).strip().lower() if v is not None else v


class ScheduleCreate(ScheduleBase):
    user_id: Optional[uuid.UUID] = None


class ScheduleUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    day_of_week: Optional[DayOfWeek] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    room_id: Optional[uuid.UUID] = None

    @field_validator("day_of_week", mode="before")
    @classmethod
    def lower_day(cls, v):
        return str(v).strip().lower() if v is not None else v


class ScheduleResponse(ScheduleBase):
    id: uuid.UUID
    user_id: uuid.UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
