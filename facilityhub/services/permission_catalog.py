"""
Static permission catalog.

Every code follows the `<resource>_<action>` format and is used verbatim as the
`permissions.code` key in the database.
"""
import enum
from typing import Dict, FrozenSet, List, NamedTuple, Optional

from sqlalchemy.orm import Session

from ..models.models import Permission


class Role(str, enum.Enum):
    admin = "admin"
    technician = "technician"
    manager = "manager"
    member = "member"
    user = "user"
    guest = "guest"


class PermissionCode(str, enum.Enum):
    # Users
    USER_READ = "user_read"
    USER_CREATE = "user_create"
    USER_UPDATE = "user_update"
    USER_DELETE = "user_delete"

    # Logs
    LOGS_READ = "logs_read"

    # Ticketing
    TICKET_READ = "ticket_read"
    TICKET_CREATE = "ticket_create"
    TICKET_UPDATE = "ticket_update"
    TICKET_DELETE = "ticket_delete"
    TICKET_ASSIGN = "ticket_assign"
    TICKET_RESOLVE = "ticket_resolve"

    # Kanban
    KANBAN_READ = "kanban_read"
    KANBAN_CREATE = "kanban_create"
    KANBAN_UPDATE = "kanban_update"
    KANBAN_DELETE = "kanban_delete"

    # Schedules
    SCHEDULE_READ = "schedule_read"
    SCHEDULE_CREATE = "schedule_create"
    SCHEDULE_UPDATE = "schedule_update"
    SCHEDULE_DELETE = "schedule_delete"

    # Reports
    REPORT_READ = "report_read"
    REPORT_CREATE = "report_create"
    REPORT_EXPORT = "report_export"

    # Storage
    STORAGE_READ = "storage_read"
    STORAGE_CREATE = "storage_create"
    STORAGE_UPDATE = "storage_update"
    STORAGE_DELETE = "storage_delete"

    # Buildings
    BUILDING_READ = "building_read"
    BUILDING_CREATE = "building_create"
    BUILDING_UPDATE = "building_update"
    BUILDING_DELETE = "building_delete"

    # Floors
    FLOOR_READ = "floor_read"
    FLOOR_CREATE = "floor_create"
    FLOOR_UPDATE = "floor_update"
    FLOOR_DELETE = "floor_delete"

    # Rooms
    ROOM_READ = "room_read"
    ROOM_CREATE = "room_create"
    ROOM_UPDATE = "room_update"
    ROOM_DELETE = "room_delete"

    # Assets
    ASSET_READ = "asset_read"
    ASSET_CREATE = "asset_create"
    ASSET_UPDATE = "asset_update"
    ASSET_DELETE = "asset_delete"
    ASSET_DEPLOY = "asset_deploy"


P = PermissionCode


def _codes(*members: PermissionCode) -> FrozenSet[str]:
    return frozenset(m.value for m in members)


ADMIN_PERMISSIONS: FrozenSet[str] = frozenset(p.value for p in PermissionCode)

# Everything except deletes
TECHNICIAN_PERMISSIONS: FrozenSet[str] = _codes(
    P.USER_READ, P.USER_CREATE, P.USER_UPDATE,
    P.LOGS_READ,
    P.TICKET_READ, P.TICKET_CREATE, P.TICKET_UPDATE, P.TICKET_ASSIGN, P.TICKET_RESOLVE,
    P.KANBAN_READ, P.KANBAN_CREATE, P.KANBAN_UPDATE,
    P.SCHEDULE_READ, P.SCHEDULE_CREATE, P.SCHEDULE_UPDATE,
    P.REPORT_READ, P.REPORT_CREATE, P.REPORT_EXPORT,
    P.STORAGE_READ, P.STORAGE_CREATE, P.STORAGE_UPDATE,
    P.BUILDING_READ, P.BUILDING_CREATE, P.BUILDING_UPDATE,
    P.FLOOR_READ, P.FLOOR_CREATE, P.FLOOR_UPDATE,
    P.ROOM_READ, P.ROOM_CREATE, P.ROOM_UPDATE,
    P.ASSET_READ, P.ASSET_CREATE, P.ASSET_UPDATE, P.ASSET_DEPLOY,
)

MEMBER_PERMISSIONS: FrozenSet[str] = _codes(
    P.TICKET_READ, P.TICKET_CREATE,
    P.KANBAN_READ,
    P.SCHEDULE_READ,
    P.BUILDING_READ,
    P.FLOOR_READ,
    P.ROOM_READ,
    P.ASSET_READ, P.ASSET_DEPLOY,
)

GUEST_PERMISSIONS: FrozenSet[str] = frozenset()

ROLE_PERMISSIONS: Dict[Role, FrozenSet[str]] = {
    Role.admin: ADMIN_PERMISSIONS,
    Role.technician: TECHNICIAN_PERMISSIONS,
    Role.manager: TECHNICIAN_PERMISSIONS,
    Role.member: MEMBER_PERMISSIONS,
    Role.user: MEMBER_PERMISSIONS,
    Role.guest: GUEST_PERMISSIONS,
}

CREATE_PERMISSIONS: FrozenSet[str] = _codes(
    P.USER_CREATE, P.TICKET_CREATE, P.KANBAN_CREATE, P.SCHEDULE_CREATE, P.REPORT_CREATE,
    P.STORAGE_CREATE, P.BUILDING_CREATE, P.FLOOR_CREATE, P.ROOM_CREATE, P.ASSET_CREATE,
)

EDIT_PERMISSIONS: FrozenSet[str] = _codes(
    P.USER_UPDATE, P.TICKET_UPDATE, P.KANBAN_UPDATE, P.SCHEDULE_UPDATE, P.STORAGE_UPDATE,
    P.BUILDING_UPDATE, P.FLOOR_UPDATE, P.ROOM_UPDATE, P.ASSET_UPDATE,
)

DELETE_PERMISSIONS: FrozenSet[str] = _codes(
    P.USER_DELETE, P.TICKET_DELETE, P.KANBAN_DELETE, P.SCHEDULE_DELETE, P.STORAGE_DELETE,
    P.BUILDING_DELETE, P.FLOOR_DELETE, P.ROOM_DELETE, P.ASSET_DELETE,
)


# =====================
# Resource table
# =====================

class ResourceType(str, enum.Enum):
    user = "user"
    logs = "logs"
    ticket = "ticket"
    kanban = "kanban"
    schedule = "schedule"
    report = "report"
    storage = "storage"
    building = "building"
    floor = "floor"
    room = "room"
    asset = "asset"


class ResourceCodes(NamedTuple):
    read: Optional[PermissionCode]
    create: Optional[PermissionCode]
    update: Optional[PermissionCode]
    delete: Optional[PermissionCode]


RESOURCE_PERMISSIONS: Dict[ResourceType, ResourceCodes] = {
    ResourceType.user: ResourceCodes(P.USER_READ, P.USER_CREATE, P.USER_UPDATE, P.USER_DELETE),
    ResourceType.logs: ResourceCodes(P.LOGS_READ, None, None, None),
    ResourceType.ticket: ResourceCodes(P.TICKET_READ, P.TICKET_CREATE, P.TICKET_UPDATE, P.TICKET_DELETE),
    ResourceType.kanban: ResourceCodes(P.KANBAN_READ, P.KANBAN_CREATE, P.KANBAN_UPDATE, P.KANBAN_DELETE),
    ResourceType.schedule: ResourceCodes(P.SCHEDULE_READ, P.SCHEDULE_CREATE, P.SCHEDULE_UPDATE, P.SCHEDULE_DELETE),
    ResourceType.report: ResourceCodes(P.REPORT_READ, P.REPORT_CREATE, None, None),
    ResourceType.storage: ResourceCodes(P.STORAGE_READ, P.STORAGE_CREATE, P.STORAGE_UPDATE, P.STORAGE_DELETE),
    ResourceType.building: ResourceCodes(P.BUILDING_READ, P.BUILDING_CREATE, P.BUILDING_UPDATE, P.BUILDING_DELETE),
    ResourceType.floor: ResourceCodes(P.FLOOR_READ, P.FLOOR_CREATE, P.FLOOR_UPDATE, P.FLOOR_DELETE),
    ResourceType.room: ResourceCodes(P.ROOM_READ, P.ROOM_CREATE, P.ROOM_UPDATE, P.ROOM_DELETE),
    ResourceType.asset: ResourceCodes(P.ASSET_READ, P.ASSET_CREATE, P.ASSET_UPDATE, P.ASSET_DELETE),
}


# =====================
# UI grouping / seeding
# =====================

PERMISSION_GROUPS: List[dict] = [
    {"name": "User Management", "permissions": [P.USER_READ, P.USER_CREATE, P.USER_UPDATE, P.USER_DELETE]},
    {"name": "Logs", "permissions": [P.LOGS_READ]},
    {"name": "Ticketing", "permissions": [P.TICKET_READ, P.TICKET_CREATE, P.TICKET_UPDATE, P.TICKET_DELETE, P.TICKET_ASSIGN, P.TICKET_RESOLVE]},
    {"name": "Kanban", "permissions": [P.KANBAN_READ, P.KANBAN_CREATE, P.KANBAN_UPDATE, P.KANBAN_DELETE]},
    {"name": "Scheduling", "permissions": [P.SCHEDULE_READ, P.SCHEDULE_CREATE, P.SCHEDULE_UPDATE, P.SCHEDULE_DELETE]},
    {"name": "Reports", "permissions": [P.REPORT_READ, P.REPORT_CREATE, P.REPORT_EXPORT]},
    {"name": "Storage", "permissions": [P.STORAGE_READ, P.STORAGE_CREATE, P.STORAGE_UPDATE, P.STORAGE_DELETE]},
    {"name": "Buildings", "permissions": [P.BUILDING_READ, P.BUILDING_CREATE, P.BUILDING_UPDATE, P.BUILDING_DELETE]},
    {"name": "Floors", "permissions": [P.FLOOR_READ, P.FLOOR_CREATE, P.FLOOR_UPDATE, P.FLOOR_DELETE]},
    {"name": "Rooms", "permissions": [P.ROOM_READ, P.ROOM_CREATE, P.ROOM_UPDATE, P.ROOM_DELETE]},
    {"name": "Assets", "permissions": [P.ASSET_READ, P.ASSET_CREATE, P.ASSET_UPDATE, P.ASSET_DELETE, P.ASSET_DEPLOY]},
]

PERMISSION_DISPLAY_NAMES: Dict[str, str] = {
    P.USER_READ.value: "View Users",
    P.USER_CREATE.value: "Create Users",
    P.USER_UPDATE.value: "Edit Users",
    P.USER_DELETE.value: "Delete Users",

    P.LOGS_READ.value: "View Logs",

    P.TICKET_READ.value: "View Tickets",
    P.TICKET_CREATE.value: "Create Tickets",
    P.TICKET_UPDATE.value: "Edit Tickets",
    P.TICKET_DELETE.value: "Delete Tickets",
    P.TICKET_ASSIGN.value: "Assign Tickets",
    P.TICKET_RESOLVE.value: "Resolve Tickets",

    P.KANBAN_READ.value: "View Kanban Boards",
    P.KANBAN_CREATE.value: "Create Kanban Items",
    P.KANBAN_UPDATE.value: "Edit Kanban Items",
    P.KANBAN_DELETE.value: "Delete Kanban Items",

    P.SCHEDULE_READ.value: "View Schedules",
    P.SCHEDULE_CREATE.value: "Create Schedules",
    P.SCHEDULE_UPDATE.value: "Edit Schedules",
    P.SCHEDULE_DELETE.value: "Delete Schedules",

    P.REPORT_READ.value: "View Reports",
    P.REPORT_CREATE.value: "Create Reports",
    P.REPORT_EXPORT.value: "Export Reports",

    P.STORAGE_READ.value: "View Storage Items",
    P.STORAGE_CREATE.value: "Create Storage Items",
    P.STORAGE_UPDATE.value: "Edit Storage Items",
    P.STORAGE_DELETE.value: "Delete Storage Items",

    P.BUILDING_READ.value: "View Buildings",
    P.BUILDING_CREATE.value: "Create Buildings",
    P.BUILDING_UPDATE.value: "Edit Buildings",
    P.BUILDING_DELETE.value: "Delete Buildings",

    P.FLOOR_READ.value: "View Floors",
    P.FLOOR_CREATE.value: "Create Floors",
    P.FLOOR_UPDATE.value: "Edit Floors",
    P.FLOOR_DELETE.value: "Delete Floors",

    P.ROOM_READ.value: "View Rooms",
    P.ROOM_CREATE.value: "Create Rooms",
    P.ROOM_UPDATE.value: "Edit Rooms",
    P.ROOM_DELETE.value: "Delete Rooms",

    P.ASSET_READ.value: "View Assets",
    P.ASSET_CREATE.value: "Create Assets",
    P.ASSET_UPDATE.value: "Edit Assets",
    P.ASSET_DELETE.value: "Delete Assets",
    P.ASSET_DEPLOY.value: "Deploy Assets",
}


def seed_permission_catalog(db: Session) -> int:
    """Create or update one `Permission` row per catalog code. Returns the number of codes."""
    group_by_code = {
        code.value: group["name"] for group in PERMISSION_GROUPS for code in group["permissions"]
    }
    existing = {p.code: p for p in db.query(Permission).all()}
    for code in PermissionCode:
        name = PERMISSION_DISPLAY_NAMES.get(code.value, code.name)
        row = existing.get(code.value)
        if row is None:
            db.add(Permission(code=code.value, name=name, description=name, group=group_by_code.get(code.value)))
        else:
            row.name = name
            row.description = name
            row.group = group_by_code.get(code.value)
    db.commit()
    return len(PermissionCode)
