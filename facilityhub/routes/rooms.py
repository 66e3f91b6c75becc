import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from ..auth.security import require_permissions
from ..errors import NotFoundError, ValidationError
from ..models.models import Asset, DeploymentRecord, Floor, Room
from ..schemas.facilities import RoomCreate, RoomDetailResponse, RoomResponse, RoomUpdate
from ..schemas.inventory import AssetResponse, DeploymentResponse
from ..services.deployment import list_deployments
from ..services.permission_catalog import PermissionCode as P


router = APIRouter(prefix="/rooms", tags=["rooms"])


def _get_room_or_404(db: Session, room_id: uuid.UUID) -> Room:
    row = db.query(Room).filter(Room.id == room_id).first()
    if not row:
        raise NotFoundError("Room not found")
    return row


@router.get("", response_model=List[RoomResponse])
def list_rooms(
    floor_id: Optional[uuid.UUID] = None,
    building_id: Optional[uuid.UUID] = None,
    type: Optional[str] = None,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.ROOM_READ)),
):
    query = db.query(Room)
    if floor_id:
        query = query.filter(Room.floor_id == floor_id)
    if building_id:
        query = query.join(Floor, Floor.id == Room.floor_id).filter(Floor.building_id == building_id)
    if type:
        query = query.filter(Room.type == type.upper())
    return query.order_by(Room.number.asc()).all()


@router.post("", response_model=RoomResponse, status_code=201)
def create_room(payload: RoomCreate, db: Session = Depends(get_db), _=Depends(require_permissions(P.ROOM_CREATE))):
    if not db.query(Floor).filter(Floor.id == payload.floor_id).first():
        raise NotFoundError("Floor not found")
    data = payload.model_dump()
    data["type"] = payload.type.value
    row = Room(**data)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("/{room_id}", response_model=RoomDetailResponse)
def get_room(room_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.ROOM_READ))):
    row = _get_room_or_404(db, room_id)
    out = RoomDetailResponse.model_validate(row)
    out.floor_number = row.floor.number if row.floor else None
    out.building_id = row.floor.building_id if row.floor else None
    out.building_name = row.floor.building.name if (row.floor and row.floor.building) else None
    out.asset_count = db.query(Asset).filter(Asset.room_id == row.id).count()
    return out


@router.patch("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: uuid.UUID,
    payload: RoomUpdate,
    db: Session = Depends(get_db),
    _=Depends(require_permissions(P.ROOM_UPDATE)),
):
    row = _get_room_or_404(db, room_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("type") is not None:
        data["type"] = data["type"].value
    for k, v in data.items():
        setattr(row, k, v)
    row.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(row)
    return row


@router.delete("/{room_id}")
def delete_room(room_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.ROOM_DELETE))):
    row = _get_room_or_404(db, room_id)
    if db.query(Asset.id).filter(Asset.room_id == row.id).first():
        raise ValidationError("Cannot delete room with assets. Please relocate all assets first.")
    deployed = db.query(DeploymentRecord.id).filter(
        or_(DeploymentRecord.to_room_id == row.id, DeploymentRecord.from_room_id == row.id)
    ).first()
    if deployed:
        raise ValidationError("Cannot delete room with deployed items. Please relocate all items first.")
    db.delete(row)
    db.commit()
    return {"status": "ok"}


@router.get("/{room_id}/assets", response_model=List[AssetResponse])
def list_room_assets(room_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.ASSET_READ))):
    row = _get_room_or_404(db, room_id)
    return db.query(Asset).filter(Asset.room_id == row.id).order_by(Asset.asset_tag.asc()).all()


@router.get("/{room_id}/deployments", response_model=List[DeploymentResponse])
def list_room_deployments(room_id: uuid.UUID, db: Session = Depends(get_db), _=Depends(require_permissions(P.ROOM_READ))):
    row = _get_room_or_404(db, room_id)
    return list_deployments(db, to_room_id=row.id)
