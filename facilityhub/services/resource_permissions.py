"""
CRUD capability lookups keyed by resource name.
"""
from typing import Dict, Optional, Union

from ..models.models import User
from .permission_catalog import RESOURCE_PERMISSIONS, PermissionCode, ResourceCodes, ResourceType
from .permissions import has_permission


def resolve_resource_type(value: Union[str, ResourceType, None]) -> Optional[ResourceType]:
    if isinstance(value, ResourceType):
        return value
    if not value:
        return None
    try:
        return ResourceType(str(value).strip().lower())
    except ValueError:
        return None


class ResourcePermissions:
    """Read/create/edit/delete checks for one resource type.

    Unknown resource types, and actions a resource does not define (e.g. deleting
    logs), always answer False.
    """

    def __init__(self, user: Optional[User], resource_type: Union[str, ResourceType, None]):
        self.user = user
        self.resource_type = resolve_resource_type(resource_type)
        codes = RESOURCE_PERMISSIONS.get(self.resource_type) if self.resource_type else None
        if codes is None:
            codes = ResourceCodes(None, None, None, None)
        self.read_permission: Optional[PermissionCode] = codes.read
        self.create_permission: Optional[PermissionCode] = codes.create
        self.update_permission: Optional[PermissionCode] = codes.update
        self.delete_permission: Optional[PermissionCode] = codes.delete

    def _check(self, code: Optional[PermissionCode]) -> bool:
        if code is None:
            return False
        return has_permission(self.user, code)

    def can_read(self) -> bool:
        return self._check(self.read_permission)

    def can_create(self) -> bool:
        return self._check(self.create_permission)

    def can_edit(self) -> bool:
        return self._check(self.update_permission)

    def can_delete(self) -> bool:
        return self._check(self.delete_permission)

    def as_dict(self) -> Dict[str, bool]:
        return {
            "can_read": self.can_read(),
            "can_create": self.can_create(),
            "can_edit": self.can_edit(),
            "can_delete": self.can_delete(),
        }


def resource_capabilities(user: Optional[User]) -> Dict[str, Dict[str, bool]]:
    return {rt.value: ResourcePermissions(user, rt).as_dict() for rt in ResourceType}
