import uuid
from datetime import datetime
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, field_validator


class RoomType(str, Enum):
    CLASSROOM = "CLASSROOM"
    OFFICE = "OFFICE"
    LABORATORY = "LABORATORY"
    STORAGE = "STORAGE"
    OTHER = "OTHER"


def _blank_to_none(v):
    if v is None:
        return None
    v = str(v).strip()
    return v or None


# =====================
# Buildings
# =====================

class BuildingBase(BaseModel):
    name: str
    address: Optional[str] = None
    description: Optional[str] = None

    @field_validator("address", "description", mode="before")
    @classmethod
    def empty_str_to_none(cls, v):
        return _blank_to_none(v)


class BuildingCreate(BuildingBase):
    pass


class BuildingUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None


class BuildingResponse(BuildingBase):
    id: uuid.UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =====================
# Floors
# =====================

class FloorBase(BaseModel):
    number: int
    name: Optional[str] = None
    building_id: uuid.UUID


class FloorCreate(FloorBase):
    pass


class FloorUpdate(BaseModel):
    number: Optional[int] = None
    name: Optional[str] = None


class FloorResponse(FloorBase):
    id: uuid.UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =====================
# Rooms
# =====================

class RoomBase(BaseModel):
    number: str
    name: Optional[str] = None
    type: RoomType = RoomType.OTHER
    floor_id: uuid.UUID

    @field_validator("name", mode="before")
    @classmethod
    def empty_str_to_none(cls, v):
        return _blank_to_none(v)


class RoomCreate(RoomBase):
    pass


class RoomUpdate(BaseModel):
    number: Optional[str] = None
    name: Optional[str] = None
    type: Optional[RoomType] = None


class RoomResponse(RoomBase):
    id: uuid.UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RoomDetailResponse(RoomResponse):
    building_id: Optional[uuid.UUID] = None
    building_name: Optional[str] = None
    floor_number: Optional[int] = None
    asset_count: int = 0


class FloorDetailResponse(FloorResponse):
    rooms: List[RoomResponse] = []


class BuildingDetailResponse(BuildingResponse):
    floors: List[FloorResponse] = []
