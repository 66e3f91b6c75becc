import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..errors import NotFoundError, ValidationError
from ..models.models import Building, Floor
from ..schemas.facilities import (
    BuildingCreate,
    BuildingDetailResponse,
    BuildingResponse,
    BuildingUpdate,
)
from ..services.permission_catalog import PermissionCode as P


router = APIRouter(prefix="/buildings", tags=["buildings"])


@router.get("", response_model=List[BuildingResponse])
def list_buildings(q: Optional[str] = None, db: Session = Depends(get_db), _=Depends(require_permissions(P.BUILDING_READ))):
    query = db.query(Building)
    if q:
        like = f"%{q}%"
        query = query.filter((Building.name.ilike(like)) | (Building.address.ilike(like)))
    return query.order_by(Building.name.asc()).all()


@router.post("", response_model=BuildingResponse, status_code=201)
def create_building(payload: BuildingCreate, db: Session = Depends(get_db), _=Depends(require_permissions(P.BUILDING_CREATE))):
    row = Building(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("/{building_id}", response_model=BuildingDetailResponse)
def get_building(building_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.BUILDING_READ))):
    row = db.query(Building).filter(Building.id == building_id).first()
    if not row:
        raise NotFoundError("Building not found")
    return row


@router.patch("/{building_id}", response_model=BuildingResponse)
def update_building(
    building_id: uuid.UUID,
    payload: BuildingUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.BUILDING_UPDATE)),
):
    row = db.query(Building).filter(Building.id == building_id).first()
    if not row:
        raise NotFoundError("Building not found")
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(row, k, v)
    row.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{building_id}")
def delete_building(building_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.BUILDING_DELETE))):
    row = db.query(Building).filter(Building.id == building_id).first()
    if not row:
        raise NotFoundError("Building not found")
    if db.query(Floor.id).filter(Floor.building_id == row.id).first():
        raise ValidationError("Cannot delete building with floors. Delete its floors first.")
    db.delete(row)
    db.commit()
    return {"status": "ok"}
