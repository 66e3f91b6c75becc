"""
Tests for per-resource capability lookups
"""
import pytest

from facilityhub.services.permission_catalog import PermissionCode, ResourceType
from facilityhub.services.resource_permissions import (
    ResourcePermissions,
    resolve_resource_type,
    resource_capabilities,
)


@pytest.mark.unit
class TestResourcePermissions:
    """Tests for ResourcePermissions"""

    def test_codes_resolved_for_room(self, member):
        perms = ResourcePermissions(member, "room")
        assert perms.read_permission == PermissionCode.ROOM_READ
        assert perms.create_permission == PermissionCode.ROOM_CREATE
        assert perms.update_permission == PermissionCode.ROOM_UPDATE
        assert perms.delete_permission == PermissionCode.ROOM_DELETE

    def test_member_on_room(self, member):
        perms = ResourcePermissions(member, "room")
        assert perms.can_read()
        assert not perms.can_create()
        assert not perms.can_edit()
        assert not perms.can_delete()

    def test_case_insensitive(self, technician):
        assert ResourcePermissions(technician, "STORAGE").can_edit()
        assert ResourcePermissions(technician, " Storage ").can_read()

    def test_unknown_resource_has_no_capabilities(self, admin):
        perms = ResourcePermissions(admin, "spaceship")
        assert perms.resource_type is None
        assert not any([perms.can_read(), perms.can_create(), perms.can_edit(), perms.can_delete()])

    def test_missing_action_is_false_even_for_admin(self, admin):
        logs = ResourcePermissions(admin, "logs")
        assert logs.can_read()
        assert not logs.can_create()
        assert not logs.can_delete()

    def test_none_user(self):
        assert ResourcePermissions(None, "room").can_read() is False

    def test_resolve_resource_type(self):
        assert resolve_resource_type("Asset") == ResourceType.asset
        assert resolve_resource_type(ResourceType.floor) == ResourceType.floor
        assert resolve_resource_type(None) is None

    def test_capabilities_table(self, technician):
        table = resource_capabilities(technician)
        assert set(table) == {rt.value for rt in ResourceType}
        assert table["asset"] == {"can_read": True, "can_create": True, "can_edit": True, "can_delete": False}
        assert table["report"]["can_edit"] is False
