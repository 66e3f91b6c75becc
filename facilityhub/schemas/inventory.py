import uuid
from datetime import datetime
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class ItemType(str, Enum):
    CABLE = "CABLE"
    SOFTWARE = "SOFTWARE"
    HARDWARE = "HARDWARE"
    COMPUTER_PART = "COMPUTER_PART"


class ComputerPartType(str, Enum):
    SYSTEM_UNIT = "SYSTEM_UNIT"
    MONITOR = "MONITOR"
    UPS = "UPS"
    RAM = "RAM"
    CPU = "CPU"
    GPU = "GPU"


ITEM_SUBTYPES = {
    ItemType.CABLE: ("USB", "HDMI", "VGA", "ETHERNET", "POWER"),
    ItemType.SOFTWARE: ("OPERATING_SYSTEM", "OFFICE", "ANTIVIRUS", "DESIGN", "DEVELOPMENT"),
    ItemType.HARDWARE: ("KEYBOARD", "MOUSE", "HEADSET", "WEBCAM", "EXTERNAL_DRIVE"),
    ItemType.COMPUTER_PART: tuple(p.value for p in ComputerPartType),
}


class AssetType(str, Enum):
    COMPUTER = "COMPUTER"
    PRINTER = "PRINTER"
    PROJECTOR = "PROJECTOR"
    NETWORK_EQUIPMENT = "NETWORK_EQUIPMENT"
    OTHER = "OTHER"


class AssetStatus(str, Enum):
    WORKING = "WORKING"
    NEEDS_REPAIR = "NEEDS_REPAIR"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"
    UNDER_MAINTENANCE = "UNDER_MAINTENANCE"


def _clean_serials(v):
    if v is None:
        return []
    return [str(s).strip() for s in v if s is not None and str(s).strip()]


# =====================
# Storage items
# =====================

class StorageItemBase(BaseModel):
    name: str
    item_type: ItemType
    sub_type: Optional[str] = None
    quantity: int = Field(default=0, ge=0)
    unit: Optional[str] = None
    remarks: Optional[str] = None
    serial_numbers: List[str] = []

    @field_validator("sub_type", "unit", "remarks", mode="before")
    @classmethod
    def empty_str_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("serial_numbers", mode="before")
    @classmethod
    def strip_serials(cls, v):
        return _clean_serials(v)

    @model_validator(mode="after")
    def sub_type_matches_item_type(self):
        if self.sub_type and self.sub_type not in ITEM_SUBTYPES[self.item_type]:
            raise ValueError(f"Invalid sub type {self.sub_type} for {self.item_type.value}")
        return self


class StorageItemCreate(StorageItemBase):
    pass


class ComputerPartCreate(BaseModel):
    name: str
    sub_type: ComputerPartType
    quantity: int = Field(default=0, ge=0)
    unit: Optional[str] = None
    remarks: Optional[str] = None
    serial_numbers: List[str] = []

    @field_validator("serial_numbers", mode="before")
    @classmethod
    def strip_serials(cls, v):
        return _clean_serials(v)


class StorageItemUpdate(BaseModel):
    name: Optional[str] = None
    item_type: Optional[ItemType] = None
    sub_type: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = None
    remarks: Optional[str] = None
    serial_numbers: Optional[List[str]] = None

    @field_validator("serial_numbers", mode="before")
    @classmethod
    def strip_serials(cls, v):
        if v is None:
            return None
        return _clean_serials(v)


class StorageItemResponse(BaseModel):
    id: uuid.UUID
    name: str
    item_type: str
    sub_type: Optional[str] = None
    quantity: int
    unit: Optional[str] = None
    remarks: Optional[str] = None
    serial_numbers: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("serial_numbers", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return list(v or [])

    class Config:
        from_attributes = True


# =====================
# Assets
# =====================

class AssetBase(BaseModel):
    asset_tag: Optional[str] = None
    asset_type: AssetType
    system_unit: Optional[str] = None
    monitor: Optional[str] = None
    ups: Optional[str] = None
    status: AssetStatus = AssetStatus.WORKING
    remarks: Optional[str] = None
    room_id: uuid.UUID

    @field_validator("asset_tag", "system_unit", "monitor", "ups", "remarks", mode="before")
    @classmethod
    def empty_str_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class AssetCreate(AssetBase):
    pass


class AssetUpdate(BaseModel):
    asset_tag: Optional[str] = None
    asset_type: Optional[AssetType] = None
    system_unit: Optional[str] = None
    monitor: Optional[str] = None
    ups: Optional[str] = None
    status: Optional[AssetStatus] = None
    remarks: Optional[str] = None


class AssetResponse(AssetBase):
    id: uuid.UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# =====================
# Deployments
# =====================

class DeploymentCreate(BaseModel):
    storage_item_id: Optional[uuid.UUID] = None
    asset_id: Optional[uuid.UUID] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    serial_number: Optional[str] = None
    from_room_id: Optional[uuid.UUID] = None
    to_room_id: uuid.UUID
    remarks: Optional[str] = None

    @field_validator("serial_number", "remarks", mode="before")
    @classmethod
    def empty_str_to_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class DeploymentResponse(BaseModel):
    id: uuid.UUID
    asset_id: Optional[uuid.UUID] = None
    storage_item_id: Optional[uuid.UUID] = None
    quantity: int
    serial_number: Optional[str] = None
    from_room_id: Optional[uuid.UUID] = None
    to_room_id: uuid.UUID
    date: datetime
    deployed_by: str
    remarks: Optional[str] = None

    class Config:
        from_attributes = True


class DeploymentResultResponse(BaseModel):
    deployment_record: DeploymentResponse
    storage_item: Optional[StorageItemResponse] = None
    asset: Optional[AssetResponse] = None
