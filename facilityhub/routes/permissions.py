from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from ..db import get_db
from ..models.models import Permission
from ..auth.security import get_current_user
from ..services.permission_catalog import PERMISSION_GROUPS, ROLE_PERMISSIONS


router = APIRouter(prefix="/permissions", tags=["permissions"])


def permission_catalog(db: Session) -> List[dict]:
    """Seeded permissions grouped the same way as the catalog"""
    rows = {p.code: p for p in db.query(Permission).all()}
    result = []
    for group in PERMISSION_GROUPS:
        perms = []
        for code in group["permissions"]:
            p = rows.get(code.value)
            if p is None:
                continue
            perms.append({
                "id": str(p.id),
                "code": p.code,
                "name": p.name,
                "description": p.description,
                "group": p.group,
            })
        if perms:
            result.append({"name": group["name"], "permissions": perms})
    return result


@router.get("")
def list_permissions(db: Session = Depends(get_db), _=Depends(get_current_user)):
    return permission_catalog(db)


@router.get("/roles")
def list_role_defaults(_=Depends(get_current_user)):
    return {role.value: sorted(codes) for role, codes in ROLE_PERMISSIONS.items()}
