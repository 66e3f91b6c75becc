from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional
import uuid

from ..db import get_db
from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..models.models import User
from ..auth.security import get_current_user, require_permissions, require_role
from ..schemas.users import (
    BulkDeleteRequest,
    BulkUpdateRequest,
    MyPermissionsResponse,
    UserPermissionsReplace,
    UserPermissionsResponse,
    UserResponse,
    UserUpdate,
)
from ..services.permission_catalog import PermissionCode as P
from ..services.permissions import (
    can_create,
    can_delete,
    can_edit,
    get_default_permissions_for_role,
    get_user_permission_codes,
    is_admin,
)
from ..services.resource_permissions import resource_capabilities
from ..services.user_admin import bulk_update_role, delete_users, replace_user_permissions
from .permissions import permission_catalog


router = APIRouter(prefix="/users", tags=["users"])


def _user_to_dict(u: User) -> dict:
    return UserResponse.model_validate(u).model_dump(mode="json")


def _get_user_or_404(db: Session, user_id: uuid.UUID) -> User:
    u = db.query(User).filter(User.id == user_id).first()
    if not u:
        raise NotFoundError("User not found")
    return u


@router.get("")
def list_users(
    q: Optional[str] = None,
    role: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.USER_READ)),
):
    """
    List users with pagination

    Args:
        q: Search query (username, email, or name)
        role: Only users with this role
        page: Page number (1-indexed)
        limit: Number of items per page (default 50, max 200)
    """
    limit = min(max(1, limit), 200)
    page = max(1, page)
    offset = (page - 1) * limit

    query = db.query(User)
    if q:
        like = f"%{q}%"
        query = query.filter(
            (User.username.ilike(like))
            | (User.email.ilike(like))
            | (User.first_name.ilike(like))
            | (User.last_name.ilike(like))
        )
    if role:
        query = query.filter(User.role == role.lower())

    total_count = query.count()
    rows = query.order_by(User.created_at.desc()).offset(offset).limit(limit).all()

    return {
        "items": [_user_to_dict(u) for u in rows],
        "total": total_count,
        "page": page,
        "limit": limit,
        "total_pages": (total_count + limit - 1) // limit if limit > 0 else 0,
    }


@router.get("/me")
def get_me(user: User = Depends(get_current_user)):
    return _user_to_dict(user)


@router.get("/me/permissions", response_model=MyPermissionsResponse)
def get_my_permissions(user: User = Depends(get_current_user)):
    return {
        "role": user.role,
        "permissions": sorted(get_user_permission_codes(user)),
        "resources": resource_capabilities(user),
        "can_create": can_create(user),
        "can_edit": can_edit(user),
        "can_delete": can_delete(user),
    }


@router.post("/bulk-delete")
def bulk_delete(
    payload: BulkDeleteRequest,
    db: Session = Depends(get_db),
    current: User = Depends(require_permissions(P.USER_DELETE)),
):
    if current.id in payload.user_ids:
        raise ValidationError("You cannot delete your own account", field="user_ids")
    count = delete_users(db, payload.user_ids)
    return {"status": "ok", "deleted": count}


@router.post("/bulk-update")
def bulk_update(
    payload: BulkUpdateRequest,
    db: Session = Depends(get_db),
    _=Depends(require_role("admin")),
):
    count = bulk_update_role(db, payload.user_ids, payload.role.value)
    return {"status": "ok", "updated": count}


@router.get("/{user_id}")
def get_user(user_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.USER_READ))):
    return _user_to_dict(_get_user_or_404(db, user_id))


@router.patch("/{user_id}")
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(require_permissions(P.USER_UPDATE)),
):
    u = _get_user_or_404(db, user_id)
    data = payload.model_dump(exclude_unset=True)
    role = data.pop("role", None)
    if role is not None:
        if not is_admin(current):
            raise AuthorizationError("Only admins can change roles")
        u.role = role.value
    for k, v in data.items():
        setattr(u, k, v)
    db.commit()
    db.refresh(u)
    return _user_to_dict(u)


@router.delete("/{user_id}")
def delete_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    current: User = Depends(require_permissions(P.USER_DELETE)),
):
    if current.id == user_id:
        raise ValidationError("You cannot delete your own account")
    u = _get_user_or_404(db, user_id)
    db.delete(u)
    db.commit()
    return {"status": "ok"}


@router.get("/{user_id}/permissions", response_model=UserPermissionsResponse)
def get_user_permissions(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.USER_READ)),
):
    """Explicit grants, role defaults and the effective set for one user"""
    u = _get_user_or_404(db, user_id)
    granted = sorted({g.permission.code for g in u.permissions if g.permission is not None})
    return {
        "user": _user_to_dict(u),
        "granted": granted,
        "role_defaults": sorted(get_default_permissions_for_role(u.role)),
        "effective": sorted(get_user_permission_codes(u)),
        "catalog": permission_catalog(db),
    }


@router.put("/{user_id}/permissions")
def put_user_permissions(
    user_id: uuid.UUID,
    payload: UserPermissionsReplace,
    db: Session = Depends(get_db),
    _=Depends(require_role("admin")),
):
    """Replace the user's explicit grants with exactly the given codes"""
    u = _get_user_or_404(db, user_id)
    granted = replace_user_permissions(db, u, payload.permissions)
    return {
        "status": "ok",
        "user_id": str(u.id),
        "granted": granted,
        "effective": sorted(get_user_permission_codes(u)),
    }
