import uuid
from datetime import datetime
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field

from ..services.tickets import TicketStatus


class TicketPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class TicketType(str, Enum):
    ISSUE_REPORT = "ISSUE_REPORT"
    ROOM_REQUEST = "ROOM_REQUEST"
    ASSET_REQUEST = "ASSET_REQUEST"


class TicketCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    priority: TicketPriority = TicketPriority.MEDIUM
    ticket_type: TicketType = TicketType.ISSUE_REPORT
    asset_id: Optional[uuid.UUID] = None
    room_id: Optional[uuid.UUID] = None


class TicketUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    assigned_to_id: Optional[uuid.UUID] = None
    moderator_id: Optional[uuid.UUID] = None


class CommentCreate(BaseModel):
    content: str = Field(min_length=1)
    is_private: bool = False


class CommentResponse(BaseModel):
    id: uuid.UUID
    ticket_id: uuid.UUID
    author_id: uuid.UUID
    content: str
    is_private: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TicketResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    status: str
    priority: str
    ticket_type: str
    asset_id: Optional[uuid.UUID] = None
    room_id: Optional[uuid.UUID] = None
    created_by_id: uuid.UUID
    assigned_to_id: Optional[uuid.UUID] = None
    moderator_id: Optional[uuid.UUID] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TicketDetailResponse(TicketResponse):
    comments: List[CommentResponse] = []
