"""
User administration: explicit permission grants and bulk role changes.
"""
import uuid
from typing import Iterable, List, Set

import structlog
from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..models.models import Permission, User, UserPermission
from .permissions import resolve_role


log = structlog.get_logger(__name__)


def replace_user_permissions(db: Session, user: User, codes: Iterable[str]) -> List[str]:
    """
    Replace the user's explicit grants with `codes`.

    This is a full replace: grants not listed are removed. Codes that are not in
    the catalog are ignored and duplicates collapse to one grant.

    Returns:
        Sorted list of codes actually granted
    """
    wanted: Set[str] = {str(c).strip() for c in codes if c and str(c).strip()}
    rows = db.query(Permission).filter(Permission.code.in_(wanted)).all() if wanted else []
    try:
        db.query(UserPermission).filter(UserPermission.user_id == user.id).delete(synchronize_session=False)
        for perm in rows:
            db.add(UserPermission(user_id=user.id, permission_id=perm.id))
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.expire(user, ["permissions"])

    granted = sorted(p.code for p in rows)
    ignored = sorted(wanted - set(granted))
    log.info("user_permissions_replaced", user_id=str(user.id), granted=granted, ignored=ignored)
    return granted


def _parse_ids(user_ids: Iterable) -> List[uuid.UUID]:
    ids = []
    for raw in user_ids:
        try:
            ids.append(uuid.UUID(str(raw)))
        except ValueError:
            raise ValidationError(f"Invalid user id: {raw}", field="user_ids")
    return ids


def delete_users(db: Session, user_ids: Iterable) -> int:
    ids = _parse_ids(user_ids)
    if not ids:
        raise ValidationError("No users selected", field="user_ids")
    users = db.query(User).filter(User.id.in_(ids)).all()
    for u in users:
        db.delete(u)
    db.commit()
    log.info("users_deleted", count=len(users))
    return len(users)


def bulk_update_role(db: Session, user_ids: Iterable, role: str) -> int:
    resolved = resolve_role(role)
    if resolved is None:
        raise ValidationError(f"Invalid role: {role}", field="role")
    ids = _parse_ids(user_ids)
    if not ids:
        raise ValidationError("No users selected", field="user_ids")
    users = db.query(User).filter(User.id.in_(ids)).all()
    for u in users:
        u.role = resolved.value
    db.commit()
    log.info("users_role_updated", count=len(users), role=resolved.value)
    return len(users)
