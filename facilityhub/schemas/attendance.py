import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class AttendanceCreate(BaseModel):
    schedule_id: uuid.UUID
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    section: str = Field(min_length=1)
    year_level: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    description: Optional[str] = None
    system_unit: bool
    keyboard: bool
    mouse: bool
    internet: bool
    ups: bool
    create_ticket: bool = False


class AttendanceRoom(BaseModel):
    id: uuid.UUID
    number: str
    name: Optional[str] = None

    class Config:
        from_attributes = True


class AttendanceOwner(BaseModel):
    id: uuid.UUID
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    class Config:
        from_attributes = True


class AttendanceSchedule(BaseModel):
    id: uuid.UUID
    title: str
    room: AttendanceRoom
    user: AttendanceOwner

    class Config:
        from_attributes = True


class AttendanceResponse(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    section: str
    year_level: str
    subject: str
    date: datetime
    description: Optional[str] = None
    system_unit: bool
    keyboard: bool
    mouse: bool
    internet: bool
    ups: bool
    schedule_id: uuid.UUID
    ticket_id: Optional[uuid.UUID] = None
    missing_equipment: List[str] = []
    schedule: Optional[AttendanceSchedule] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AttendancePage(BaseModel):
    items: List[AttendanceResponse]
    total: int
    page: int
    limit: int
    total_pages: int
