import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..errors import NotFoundError, ValidationError
from ..models.models import Building, Floor, Room
from ..schemas.facilities import FloorCreate, FloorDetailResponse, FloorResponse, FloorUpdate
from ..services.permission_catalog import PermissionCode as P


router = APIRouter(prefix="/floors", tags=["floors"])


@router.get("", response_model=List[FloorResponse])
def list_floors(
    building_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.FLOOR_READ)),
):
    query = db.query(Floor)
    if building_id:
        query = query.filter(Floor.building_id == building_id)
    return query.order_by(Floor.number.asc()).all()


@router.post("", response_model=FloorResponse, status_code=201)
def create_floor(payload: FloorCreate, db: Session = Depends(get_db), _=Depends(require_permissions(P.FLOOR_CREATE))):
    if not db.query(Building).filter(Building.id == payload.building_id).first():
        raise NotFoundError("Building not found")
    row = Floor(**payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("/{floor_id}", response_model=FloorDetailResponse)
def get_floor(floor_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.FLOOR_READ))):
    row = db.query(Floor).filter(Floor.id == floor_id).first()
    if not row:
        raise NotFoundError("Floor not found")
    return row


@router.patch("/{floor_id}", response_model=FloorResponse)
def update_floor(
    floor_id: uuid.UUID,
    payload: FloorUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.FLOOR_UPDATE)),
):
    row = db.query(Floor).filter(Floor.id == floor_id).first()
    if not row:
        raise NotFoundError("Floor not found")
    for k, v in payload.model_dump(exclude_unset=True).items():
        setattr(row, k, v)
    row.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{floor_id}")
def delete_floor(floor_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.FLOOR_DELETE))):
    row = db.query(Floor).filter(Floor.id == floor_id).first()
    if not row:
        raise NotFoundError("Floor not found")
    if db.query(Room.id).filter(Room.floor_id == row.id).first():
        raise ValidationError("Cannot delete floor with rooms. Delete its rooms first.")
    db.delete(row)
    db.commit()
    return {"status": "ok"}
