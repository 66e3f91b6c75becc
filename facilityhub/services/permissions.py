"""
Permission resolution for users.

Effective permissions are the role baseline plus the user's explicit grants.
Grants are additive only; nothing here can revoke a baseline code. None of these
functions raise: a missing user or an unknown role resolves to no permissions.
"""
from typing import Iterable, Optional, Set, Union

from ..models.models import User
from .permission_catalog import (
    CREATE_PERMISSIONS,
    DELETE_PERMISSIONS,
    EDIT_PERMISSIONS,
    ROLE_PERMISSIONS,
    PermissionCode,
    Role,
)


CodeLike = Union[str, PermissionCode]

# Roles that always pass the coarse create/edit shortcuts
STAFF_ROLES = frozenset({Role.admin, Role.technician, Role.manager})


def resolve_role(value) -> Optional[Role]:
    """Coerce a stored role string to `Role`. Unknown values give None."""
    if isinstance(value, Role):
        return value
    if not value:
        return None
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        return None


def _code(code: CodeLike) -> str:
    return code.value if isinstance(code, PermissionCode) else str(code)


def is_admin(user: Optional[User]) -> bool:
    return user is not None and resolve_role(user.role) == Role.admin


def is_staff(user: Optional[User]) -> bool:
    return user is not None and resolve_role(user.role) in STAFF_ROLES


def get_default_permissions_for_role(role) -> Set[str]:
    resolved = resolve_role(role)
    if resolved is None:
        return set()
    return set(ROLE_PERMISSIONS.get(resolved, ()))


def _granted_codes(user: User) -> Set[str]:
    codes = set()
    for grant in user.permissions or []:
        if grant.permission is not None:
            codes.add(grant.permission.code)
    return codes


def get_user_permission_codes(user: Optional[User]) -> Set[str]:
    """Union of the role baseline and the user's explicit grants."""
    if user is None:
        return set()
    return get_default_permissions_for_role(user.role) | _granted_codes(user)


def has_permission(user: Optional[User], code: CodeLike) -> bool:
    if user is None:
        return False
    if is_admin(user):
        return True
    wanted = _code(code)
    if wanted in get_default_permissions_for_role(user.role):
        return True
    return wanted in _granted_codes(user)


def has_any_permission(user: Optional[User], codes: Iterable[CodeLike]) -> bool:
    return any(has_permission(user, c) for c in codes)


def has_all_permissions(user: Optional[User], codes: Iterable[CodeLike]) -> bool:
    if user is None:
        return False
    return all(has_permission(user, c) for c in codes)


def can_create(user: Optional[User]) -> bool:
    if is_staff(user):
        return True
    return has_any_permission(user, CREATE_PERMISSIONS)


def can_edit(user: Optional[User]) -> bool:
    if is_staff(user):
        return True
    return has_any_permission(user, EDIT_PERMISSIONS)


def can_delete(user: Optional[User]) -> bool:
    if is_admin(user):
        return True
    return has_any_permission(user, DELETE_PERMISSIONS)
