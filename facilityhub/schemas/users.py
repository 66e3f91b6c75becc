import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from ..services.permission_catalog import Role


class UserResponse(BaseModel):
    id: uuid.UUID
    external_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    image_url: Optional[str] = None
    role: str
    display_name: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    image_url: Optional[str] = None
    role: Optional[Role] = None


class BulkDeleteRequest(BaseModel):
    user_ids: List[uuid.UUID]


class BulkUpdateRequest(BaseModel):
    user_ids: List[uuid.UUID]
    role: Role


class PermissionResponse(BaseModel):
    id: uuid.UUID
    code: str
    name: str
    description: Optional[str] = None
    group: Optional[str] = None

    class Config:
        from_attributes = True


class PermissionGroupResponse(BaseModel):
    name: str
    permissions: List[PermissionResponse]


class UserPermissionsReplace(BaseModel):
    permissions: List[str]


class UserPermissionsResponse(BaseModel):
    user: UserResponse
    granted: List[str]
    role_defaults: List[str]
    effective: List[str]
    catalog: List[PermissionGroupResponse] = []


class MyPermissionsResponse(BaseModel):
    role: Optional[str] = None
    permissions: List[str]
    resources: Dict[str, Dict[str, bool]]
    can_create: bool
    can_edit: bool
    can_delete: bool
